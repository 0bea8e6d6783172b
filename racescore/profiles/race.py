"""Race context and past-performance records."""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

# Canonical going labels; Japanese and English spellings normalize to these
CONDITION_GOOD = "good"
CONDITION_YIELDING = "yielding"
CONDITION_SOFT = "soft"
CONDITION_HEAVY = "heavy"

_CONDITION_ALIASES = {
    "良": CONDITION_GOOD,
    "稍重": CONDITION_YIELDING,
    "稍": CONDITION_YIELDING,
    "重": CONDITION_SOFT,
    "不良": CONDITION_HEAVY,
    "不": CONDITION_HEAVY,
}

_SURFACE_ALIASES = {
    "芝": "turf",
    "ダート": "dirt",
    "ダ": "dirt",
    "障害": "jump",
    "障": "jump",
}

_G1_TAG = re.compile(r"(?<![A-Za-z0-9])(?:G1|GI|Jpn1|JpnI)(?![A-Za-z0-9])", re.IGNORECASE)
_GRADED_TAG = re.compile(r"(?<![A-Za-z0-9])(?:G[123]|GI{1,3}|Jpn[123]|JpnI{1,3})(?![A-Za-z0-9])",
                         re.IGNORECASE)

# Races treated as G1 regardless of the recorded class
MAJOR_RACE_NAMES = (
    "有馬記念", "ダービー", "天皇賞", "ジャパンカップ", "宝塚記念", "菊花賞", "皐月賞", "オークス",
    "Arima Kinen", "Derby", "Tenno Sho", "Japan Cup", "Takarazuka Kinen", "Kikuka Sho",
    "Satsuki Sho", "Oaks",
)


def normalize_condition(condition: Optional[str]) -> str:
    """Normalize a going description to good / yielding / soft / heavy.

    Unknown or empty values default to good.
    """
    if not condition:
        return CONDITION_GOOD
    c = condition.strip()
    if c in _CONDITION_ALIASES:
        return _CONDITION_ALIASES[c]
    c = c.lower()
    if "heavy" in c or "hvy" in c:
        return CONDITION_HEAVY
    if "yielding" in c or "good to soft" in c:
        return CONDITION_YIELDING
    if "soft" in c or "sft" in c:
        return CONDITION_SOFT
    return CONDITION_GOOD


def normalize_surface(surface: Optional[str]) -> str:
    """Normalize a surface label to turf / dirt / jump (default turf)."""
    if not surface:
        return "turf"
    s = surface.strip()
    if s in _SURFACE_ALIASES:
        return _SURFACE_ALIASES[s]
    s = s.lower()
    if "dirt" in s or "sand" in s:
        return "dirt"
    if "jump" in s or "hurdle" in s or "steeple" in s:
        return "jump"
    return "turf"


def is_g1_class(race_class: Optional[str]) -> bool:
    """True when the class carries a G1 / GI / Jpn1 tag as a whole token.

    GII and GIII are not matched.
    """
    return bool(race_class) and _G1_TAG.search(race_class) is not None


def is_graded_class(race_class: Optional[str]) -> bool:
    """True for any G1-G3 (or Jpn1-3) class."""
    return bool(race_class) and _GRADED_TAG.search(race_class) is not None


def is_major_race_name(name: Optional[str]) -> bool:
    if not name:
        return False
    return any(major in name for major in MAJOR_RACE_NAMES)


def distance_category(distance: int) -> str:
    """Map distance to sprint / mile / intermediate / long."""
    if distance < 1400:
        return "sprint"
    elif distance < 1800:
        return "mile"
    elif distance < 2200:
        return "intermediate"
    return "long"


@dataclass(frozen=True)
class RaceContext:
    """The race being scored."""

    id: int
    name: str
    venue: str
    distance: int
    date: date
    surface: str = "turf"
    race_class: Optional[str] = None
    track_condition: str = CONDITION_GOOD

    @property
    def is_g1(self) -> bool:
        return is_g1_class(self.race_class) or is_major_race_name(self.name)

    @property
    def is_graded(self) -> bool:
        return is_graded_class(self.race_class)

    @property
    def distance_category(self) -> str:
        return distance_category(self.distance)


@dataclass(frozen=True)
class RaceResult:
    """One past run of a horse."""

    race_id: int
    race_name: str
    date: date
    distance: int
    venue: str
    surface: str = "turf"
    race_class: Optional[str] = None
    track_condition: Optional[str] = None
    jockey_id: Optional[int] = None
    popularity: Optional[int] = None
    finish_position: Optional[int] = None
    last_3f_time: Optional[float] = None

    @property
    def is_win(self) -> bool:
        return self.finish_position == 1

    @property
    def is_place(self) -> bool:
        return self.finish_position is not None and self.finish_position <= 2

    @property
    def is_show(self) -> bool:
        return self.finish_position is not None and self.finish_position <= 3

    @property
    def is_g1(self) -> bool:
        """G1 by class tag, or by one of the major race names."""
        return is_g1_class(self.race_class) or is_major_race_name(self.race_name)

    def distance_diff(self, target: int) -> int:
        return abs(self.distance - target)

    @property
    def popularity_diff(self) -> int:
        """Betting rank minus finish; positive means the horse beat the market."""
        if self.popularity is None or self.finish_position is None:
            return 0
        return self.popularity - self.finish_position
