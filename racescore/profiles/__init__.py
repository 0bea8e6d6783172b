"""Horse, jockey, trainer and race profiles used for scoring."""

from racescore.profiles.horse import HorseProfile, TrackConditionStat, VenueStat, post_position_score
from racescore.profiles.jockey import JockeyProfile, JockeyVenueStat, RecordStat
from racescore.profiles.race import RaceContext, RaceResult, normalize_condition, normalize_surface
from racescore.profiles.trainer import TrainerProfile

__all__ = [
    "HorseProfile",
    "JockeyProfile",
    "JockeyVenueStat",
    "RaceContext",
    "RaceResult",
    "RecordStat",
    "TrackConditionStat",
    "TrainerProfile",
    "VenueStat",
    "normalize_condition",
    "normalize_surface",
    "post_position_score",
]
