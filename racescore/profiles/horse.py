"""Horse profile and the eight horse-derived factor scores.

All scores are on a 0-100 scale. Each method documents the value it falls
back to when the horse has no relevant history; missing data never raises.
"""

from dataclasses import dataclass, field
from typing import Optional

from racescore.components import ScoreComponents, clamp_score
from racescore.profiles import constants as c
from racescore.profiles.jockey import JockeyProfile
from racescore.profiles.race import RaceContext, RaceResult, normalize_condition
from racescore.profiles.trainer import TrainerProfile


@dataclass(frozen=True)
class _RecordStat:
    """Runs with exact 1st/2nd/3rd counts (so wins + places + shows <= runs)."""

    runs: int = 0
    wins: int = 0
    places: int = 0
    shows: int = 0

    @property
    def win_rate(self) -> float:
        return self.wins / self.runs if self.runs > 0 else 0.0

    @property
    def place_rate(self) -> float:
        """Top-2 rate."""
        return (self.wins + self.places) / self.runs if self.runs > 0 else 0.0

    @property
    def show_rate(self) -> float:
        """Top-3 rate."""
        return (self.wins + self.places + self.shows) / self.runs if self.runs > 0 else 0.0


@dataclass(frozen=True)
class VenueStat(_RecordStat):
    """A horse's record at one venue."""

    venue: str = ""


@dataclass(frozen=True)
class TrackConditionStat(_RecordStat):
    """A horse's record on one going (normalized label)."""

    track_condition: str = ""


def post_position_score(gate_number: Optional[int]) -> float:
    """Fixed gate advantage table; unknown gates score 50."""
    if gate_number is None:
        return c.POST_POSITION_DEFAULT
    return c.POST_POSITION_SCORES.get(gate_number, c.POST_POSITION_DEFAULT)


def _finish_score(position: Optional[int]) -> float:
    if position is None:
        return c.FINISH_SCORE_FLOOR
    return c.step_score(position, c.FINISH_POSITION_SCORES, c.FINISH_SCORE_FLOOR)


def _aptitude_score(stat: Optional[_RecordStat]) -> Optional[float]:
    """win_rate*60 + place_rate*40, or None when there is no record."""
    if stat is None or stat.runs <= 0:
        return None
    return stat.win_rate * c.APTITUDE_WIN_WEIGHT + stat.place_rate * c.APTITUDE_PLACE_WEIGHT


@dataclass(frozen=True)
class HorseProfile:
    """A horse with its past runs (newest first) and aggregate records."""

    id: int
    name: str
    results: tuple[RaceResult, ...] = ()
    venue_stats: tuple[VenueStat, ...] = ()
    track_condition_stats: tuple[TrackConditionStat, ...] = ()
    sire_name: Optional[str] = None
    trainer_id: Optional[int] = None
    _venue_index: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _condition_index: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.results, key=lambda r: r.date, reverse=True))
        object.__setattr__(self, "results", ordered)
        object.__setattr__(self, "venue_stats", tuple(self.venue_stats))
        object.__setattr__(self, "track_condition_stats", tuple(self.track_condition_stats))
        self._venue_index.update({s.venue: s for s in self.venue_stats})
        self._condition_index.update(
            {normalize_condition(s.track_condition): s for s in self.track_condition_stats}
        )

    # ──────────────────────────────────────────────
    # Form
    # ──────────────────────────────────────────────

    def recent_performance_score(self) -> float:
        """Recency-weighted finish scores over the last five runs.

        Each run's finish score is adjusted by how it compared with its betting
        rank: beating the market adds 3 per place (capped at 100), missing it
        subtracts 1.5 per place (floored at 0). No history scores 0.
        """
        recent = self.results[:c.RECENT_RACE_COUNT]
        if not recent:
            return 0.0

        total = 0.0
        for result, weight in zip(recent, c.RECENT_RACE_WEIGHTS):
            raw = _finish_score(result.finish_position)
            diff = result.popularity_diff
            if diff > 0:
                raw = min(raw + diff * c.POPULARITY_BONUS_PER_PLACE, 100.0)
            elif diff < 0:
                raw = max(0.0, raw + diff * c.POPULARITY_PENALTY_PER_PLACE)
            total += raw * weight
        return clamp_score(total)

    def last_3f_ability_score(self) -> float:
        """Closing speed from the mean recorded final-600m time.

        Scores (37 - avg) / 4 * 100, so a 33.0s average is 100 and 37.0s or
        slower is 0. Without any recorded time, falls back to
        top3_rate * 80 + 20, the rate taken over runs with a recorded finish.
        No history scores 0.
        """
        if not self.results:
            return 0.0

        times = [r.last_3f_time for r in self.results if r.last_3f_time is not None]
        if times:
            avg = sum(times) / len(times)
            return clamp_score(
                (c.LAST_3F_BASELINE_SECONDS - avg) / c.LAST_3F_SPREAD_SECONDS * 100
            )

        finished = [r for r in self.results if r.finish_position is not None]
        top3_rate = sum(1 for r in finished if r.is_show) / len(finished) if finished else 0.0
        return clamp_score(top3_rate * c.LAST_3F_FALLBACK_TOP3_WEIGHT + c.LAST_3F_FALLBACK_BASE)

    # ──────────────────────────────────────────────
    # Suitability
    # ──────────────────────────────────────────────

    def venue_aptitude_score(self, venue: str) -> float:
        """Venue record scaled by a sample-size reliability factor. No record scores 50."""
        stat = self._venue_index.get(venue)
        raw = _aptitude_score(stat)
        if raw is None:
            return c.APTITUDE_NO_DATA_SCORE
        factor = c.reliability(stat.runs, c.HORSE_VENUE_RELIABILITY, c.HORSE_VENUE_RELIABILITY_FLOOR)
        return clamp_score(raw * factor)

    def track_condition_aptitude_score(self, track_condition: Optional[str] = None) -> float:
        """Record on the given going (default good). No record scores 50."""
        stat = self._condition_index.get(normalize_condition(track_condition))
        raw = _aptitude_score(stat)
        if raw is None:
            return c.APTITUDE_NO_DATA_SCORE
        return clamp_score(raw)

    def distance_aptitude_score(self, distance: int) -> float:
        """Record at distances within 300m of the target.

        win_rate * 60 + top3_rate * 40 over runs with a recorded finish, plus
        10 per win within 100m. No runs in the window scores 0.
        """
        nearby = [r for r in self.results if r.distance_diff(distance) <= c.DISTANCE_WINDOW_M]
        finished = [r for r in nearby if r.finish_position is not None]
        if not finished:
            return 0.0

        win_rate = sum(1 for r in finished if r.is_win) / len(finished)
        show_rate = sum(1 for r in finished if r.is_show) / len(finished)
        close_wins = sum(
            1 for r in nearby
            if r.is_win and r.distance_diff(distance) <= c.DISTANCE_CLOSE_WIN_WINDOW_M
        )
        score = (
            win_rate * c.APTITUDE_WIN_WEIGHT
            + show_rate * c.APTITUDE_PLACE_WEIGHT
            + close_wins * c.DISTANCE_CLOSE_WIN_BONUS
        )
        return clamp_score(score)

    # ──────────────────────────────────────────────
    # Class & fitness
    # ──────────────────────────────────────────────

    def g1_achievement_score(self) -> float:
        """Summed finish scores in G1 / major races. No G1 runs scores 30."""
        g1_runs = [r for r in self.results if r.is_g1]
        if not g1_runs:
            return c.G1_NO_HISTORY_SCORE

        total = 0.0
        for r in g1_runs:
            if r.finish_position is None:
                total += c.G1_FINISH_FLOOR
            else:
                total += c.step_score(r.finish_position, c.G1_FINISH_SCORES, c.G1_FINISH_FLOOR)
        return clamp_score(total)

    def rotation_aptitude_score(self) -> float:
        """Top-3 rate of runs that followed a 21-70 day break.

        Intervals are taken between consecutive runs; the run after the
        interval is the one credited. Fewer than two runs, or no interval in
        the optimal window, scores 0.
        """
        if len(self.results) < 2:
            return 0.0

        optimal = 0
        good = 0
        for current, previous in zip(self.results, self.results[1:]):
            days = (current.date - previous.date).days
            if c.ROTATION_OPTIMAL_MIN_DAYS <= days <= c.ROTATION_OPTIMAL_MAX_DAYS:
                optimal += 1
                if current.is_show:
                    good += 1

        if optimal == 0:
            return 0.0
        return clamp_score(good / optimal * 100)

    # ──────────────────────────────────────────────
    # Composite
    # ──────────────────────────────────────────────

    def score(
        self,
        race: RaceContext,
        jockey: Optional[JockeyProfile] = None,
        trainer: Optional[TrainerProfile] = None,
        gate_number: Optional[int] = None,
    ) -> ScoreComponents:
        """All ten factor scores for this horse in ``race``.

        A missing jockey or trainer scores 0 for that factor.
        """
        return ScoreComponents(
            recent_performance=self.recent_performance_score(),
            venue_aptitude=self.venue_aptitude_score(race.venue),
            distance_aptitude=self.distance_aptitude_score(race.distance),
            last_3f_ability=self.last_3f_ability_score(),
            g1_achievement=self.g1_achievement_score(),
            rotation_aptitude=self.rotation_aptitude_score(),
            jockey_ability=jockey.score(race.venue, self.trainer_id) if jockey else 0.0,
            track_condition_aptitude=self.track_condition_aptitude_score(race.track_condition),
            post_position_effect=post_position_score(gate_number),
            trainer_ability=trainer.score() if trainer else 0.0,
        )
