"""Jockey profile and jockey-ability score."""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from racescore.components import clamp_score
from racescore.profiles import constants as c


def _rate(wins: int, runs: int) -> float:
    if runs <= 0:
        return 0.0
    return max(0.0, min(1.0, wins / runs))


@dataclass(frozen=True)
class RecordStat:
    """Runs and wins."""

    runs: int = 0
    wins: int = 0

    @property
    def win_rate(self) -> float:
        return _rate(self.wins, self.runs)


@dataclass(frozen=True)
class JockeyVenueStat:
    """A jockey's record at one venue, with the G1 subset."""

    venue: str
    runs: int = 0
    wins: int = 0
    g1_runs: int = 0
    g1_wins: int = 0

    @property
    def win_rate(self) -> float:
        return _rate(self.wins, self.runs)

    @property
    def g1_win_rate(self) -> float:
        return _rate(self.g1_wins, self.g1_runs)


@dataclass(frozen=True)
class JockeyProfile:
    """A jockey with venue, overall and per-trainer records."""

    id: int
    name: str
    venue_stats: Mapping[str, JockeyVenueStat] = field(default_factory=dict)
    overall: Optional[RecordStat] = None
    trainer_combos: Mapping[int, RecordStat] = field(default_factory=dict)

    def overall_score(self) -> float:
        if self.overall is None or self.overall.runs <= 0:
            return 0.0
        return self.overall.win_rate * 100

    def venue_score(self, venue: str) -> float:
        """Venue win rate scaled by reliability; falls back to 0.75 x overall."""
        stat = self.venue_stats.get(venue)
        if stat is None or stat.runs <= 0:
            return self.overall_score() * c.JOCKEY_VENUE_FALLBACK_RATIO
        factor = c.reliability(stat.runs, c.JOCKEY_VENUE_RELIABILITY, c.JOCKEY_VENUE_RELIABILITY_FLOOR)
        return stat.win_rate * 100 * factor

    def venue_g1_score(self, venue: str) -> float:
        """Venue G1 win rate scaled by reliability; falls back to 0.5 x overall."""
        stat = self.venue_stats.get(venue)
        if stat is None or stat.g1_runs <= 0:
            return self.overall_score() * c.JOCKEY_G1_FALLBACK_RATIO
        factor = c.reliability(stat.g1_runs, c.G1_RELIABILITY, c.G1_RELIABILITY_FLOOR)
        return stat.g1_win_rate * 100 * factor

    def trainer_combo_score(self, trainer_id: Optional[int]) -> float:
        """Win rate with this trainer; 50 without a trainer or with fewer than 3 runs."""
        if trainer_id is None:
            return c.JOCKEY_COMBO_DEFAULT
        combo = self.trainer_combos.get(trainer_id)
        if combo is None or combo.runs < c.JOCKEY_COMBO_MIN_RUNS:
            return c.JOCKEY_COMBO_DEFAULT
        return combo.win_rate * 100

    def score(self, venue: str, trainer_id: Optional[int] = None) -> float:
        """0.3 venue + 0.3 venue G1 + 0.2 overall + 0.2 trainer combo, capped at 100."""
        w = c.JOCKEY_WEIGHTS
        total = (
            self.venue_score(venue) * w["venue"]
            + self.venue_g1_score(venue) * w["venue_g1"]
            + self.overall_score() * w["overall"]
            + self.trainer_combo_score(trainer_id) * w["trainer_combo"]
        )
        return clamp_score(total)
