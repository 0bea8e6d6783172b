"""Score components: the ten heuristic factor scores for one entrant.

Each factor is a 0-100 score produced by the horse, jockey and trainer
profiles. The weighted total is the model's estimate of competitive strength;
it is a ranking signal, not a probability.
"""

from dataclasses import asdict, dataclass, fields
from typing import Mapping, Optional

# Factor registry: every scoring factor with display metadata
FACTOR_REGISTRY = {
    "recent_performance":       {"label": "Recent Performance", "category": "Form",
                                 "description": "Last five finishes, recency weighted, with popularity adjustment"},
    "venue_aptitude":           {"label": "Venue Aptitude",     "category": "Suitability",
                                 "description": "Win and place record at today's venue"},
    "distance_aptitude":        {"label": "Distance Aptitude",  "category": "Suitability",
                                 "description": "Record at distances within 300m of today's trip"},
    "last_3f_ability":          {"label": "Closing Speed",      "category": "Form",
                                 "description": "Average final 600m time, or top-3 rate when untimed"},
    "g1_achievement":           {"label": "G1 Achievement",     "category": "Class",
                                 "description": "Placings in Group 1 and major named races"},
    "rotation_aptitude":        {"label": "Rotation",           "category": "Fitness",
                                 "description": "Top-3 rate after a 21-70 day freshen"},
    "jockey_ability":           {"label": "Jockey",             "category": "Connections",
                                 "description": "Venue, venue G1, overall and trainer-combo win rates"},
    "track_condition_aptitude": {"label": "Track Condition",    "category": "Suitability",
                                 "description": "Record on today's going"},
    "post_position_effect":     {"label": "Gate Draw",          "category": "Race Dynamics",
                                 "description": "Fixed advantage table by starting gate"},
    "trainer_ability":          {"label": "Trainer",            "category": "Connections",
                                 "description": "G1 and graded stakes win rates"},
}

# Fixed factor order shared by feature vectors and external classifiers
FEATURE_NAMES: tuple[str, ...] = tuple(FACTOR_REGISTRY)

# Default weights (must sum to 1.0)
DEFAULT_WEIGHTS = {
    "recent_performance": 0.22,
    "venue_aptitude": 0.15,
    "distance_aptitude": 0.12,
    "last_3f_ability": 0.10,
    "g1_achievement": 0.05,
    "rotation_aptitude": 0.10,
    "jockey_ability": 0.08,
    "track_condition_aptitude": 0.05,
    "post_position_effect": 0.05,
    "trainer_ability": 0.08,
}

# Score bands for display
BAND_STRONG = 70.0
BAND_NOTABLE = 55.0
BAND_NORMAL = 40.0

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp_score(value: float) -> float:
    """Clamp a raw factor score into [0, 100]."""
    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


def score_band(value: float) -> str:
    """Bucket a 0-100 score: strong / notable / normal / weak."""
    if value >= BAND_STRONG:
        return "strong"
    if value >= BAND_NOTABLE:
        return "notable"
    if value >= BAND_NORMAL:
        return "normal"
    return "weak"


@dataclass(frozen=True)
class ScoreComponents:
    """Ten factor scores, each clamped to 0-100 on construction."""

    recent_performance: float = 0.0
    venue_aptitude: float = 0.0
    distance_aptitude: float = 0.0
    last_3f_ability: float = 0.0
    g1_achievement: float = 0.0
    rotation_aptitude: float = 0.0
    jockey_ability: float = 0.0
    track_condition_aptitude: float = 0.0
    post_position_effect: float = 0.0
    trainer_ability: float = 0.0

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, clamp_score(getattr(self, f.name)))

    def total(self, weights: Optional[Mapping[str, float]] = None) -> float:
        """Weighted sum of the components (DEFAULT_WEIGHTS when not given).

        Factors missing from ``weights`` contribute nothing.
        """
        w = DEFAULT_WEIGHTS if weights is None else weights
        return sum(getattr(self, name) * w.get(name, 0.0) for name in FEATURE_NAMES)

    def to_feature_vector(self) -> list[float]:
        """Components scaled to 0-1, in FEATURE_NAMES order."""
        return [getattr(self, name) / SCORE_MAX for name in FEATURE_NAMES]

    def to_dict(self, weights: Optional[Mapping[str, float]] = None) -> dict:
        """Convert to dictionary, including the weighted total."""
        data = asdict(self)
        data["total"] = round(self.total(weights), 2)
        return data
