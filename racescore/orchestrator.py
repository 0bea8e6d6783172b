"""Scoring orchestrator: score every entrant of a race from batched lookups.

The orchestrator resolves the race once, then fetches horse, jockey and
trainer data with a fixed number of batched repository calls keyed by id
sets, so the number of queries does not grow with the field size. All
history is cut off strictly before the race date, which lets the same code
score historical races for backtesting without look-ahead.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from racescore.components import ScoreComponents
from racescore.profiles.horse import HorseProfile, TrackConditionStat, VenueStat
from racescore.profiles.jockey import JockeyProfile, JockeyVenueStat, RecordStat
from racescore.profiles.race import RaceContext, RaceResult
from racescore.profiles.trainer import TrainerProfile

logger = logging.getLogger(__name__)


class RaceNotFound(LookupError):
    """Raised when a race id does not resolve."""

    def __init__(self, race_id: int):
        super().__init__(f"Race not found: {race_id}")
        self.race_id = race_id


@dataclass(frozen=True)
class Entrant:
    """A confirmed runner in a race, in entry order."""

    horse_id: int
    horse_name: str
    gate_number: Optional[int] = None
    horse_number: Optional[int] = None
    jockey_id: Optional[int] = None
    jockey_name: Optional[str] = None


@dataclass(frozen=True)
class HorseDetails:
    id: int
    name: str
    sire_name: Optional[str] = None
    trainer_id: Optional[int] = None


@dataclass(frozen=True)
class EntrantScore:
    """Scoring output for one entrant."""

    entrant_id: int
    entrant_name: str
    gate_number: Optional[int]
    components: ScoreComponents

    @property
    def total(self) -> float:
        return self.components.total()

    def to_dict(self) -> dict:
        return {
            "entrant_id": self.entrant_id,
            "entrant_name": self.entrant_name,
            "gate_number": self.gate_number,
            "components": self.components.to_dict(),
        }


class ScoringRepository(Protocol):
    """Read-only data source consumed by the orchestrator and backtester.

    Batch methods return a mapping with an entry only for ids that have
    rows; callers treat a missing id as "no data". ``before`` restricts
    history to races run strictly before that date.
    """

    async def get_race_context(self, race_id: int) -> Optional[RaceContext]: ...

    async def get_entrants(self, race_id: int) -> list[Entrant]: ...

    async def batch_get_horse_details(self, horse_ids: Sequence[int]) -> Mapping[int, HorseDetails]: ...

    async def batch_get_race_results(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, list[RaceResult]]: ...

    async def batch_get_venue_stats(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, list[VenueStat]]: ...

    async def batch_get_track_condition_stats(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, list[TrackConditionStat]]: ...

    async def batch_get_jockey_venue_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, list[JockeyVenueStat]]: ...

    async def batch_get_jockey_overall_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, RecordStat]: ...

    async def batch_get_jockey_trainer_combo_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, Mapping[int, RecordStat]]: ...

    async def batch_get_trainer_stats(
        self, trainer_ids: Sequence[int], before: Optional[date] = None
    ) -> Mapping[int, TrainerProfile]: ...

    async def get_races_with_results(
        self, graded_only: bool = False, limit: Optional[int] = None
    ) -> list[RaceContext]: ...

    async def get_finish_positions(self, race_id: int) -> Mapping[int, int]: ...


def _unique(ids: Iterable[Optional[int]]) -> list[int]:
    """Distinct non-null ids, first-seen order."""
    return list(dict.fromkeys(i for i in ids if i is not None))


def rank(scores: Sequence[EntrantScore]) -> list[EntrantScore]:
    """Order by total descending; ties keep entry order."""
    return sorted(scores, key=lambda s: s.total, reverse=True)


class ScoringOrchestrator:
    """Builds profiles from repository batches and scores each entrant."""

    def __init__(self, repository: ScoringRepository):
        self.repository = repository

    async def score_race(self, race_id: int) -> list[EntrantScore]:
        """Score all entrants of ``race_id`` in entry order.

        Raises RaceNotFound for an unknown race. A race without entrants
        returns an empty list.
        """
        repo = self.repository
        race = await repo.get_race_context(race_id)
        if race is None:
            raise RaceNotFound(race_id)

        entrants = await repo.get_entrants(race_id)
        if not entrants:
            logger.debug("Race %s has no entrants", race_id)
            return []

        horse_ids = _unique(e.horse_id for e in entrants)
        before = race.date

        details = await repo.batch_get_horse_details(horse_ids)
        results = await repo.batch_get_race_results(horse_ids, before)
        venue_stats = await repo.batch_get_venue_stats(horse_ids, before)
        condition_stats = await repo.batch_get_track_condition_stats(horse_ids, before)

        jockeys = await self._load_jockeys(entrants, before)

        trainer_ids = _unique(d.trainer_id for d in details.values())
        trainers: Mapping[int, TrainerProfile] = {}
        if trainer_ids:
            trainers = await repo.batch_get_trainer_stats(trainer_ids, before)

        scores = []
        for entrant in entrants:
            detail = details.get(entrant.horse_id)
            horse = HorseProfile(
                id=entrant.horse_id,
                name=detail.name if detail else entrant.horse_name,
                results=tuple(results.get(entrant.horse_id, ())),
                venue_stats=tuple(venue_stats.get(entrant.horse_id, ())),
                track_condition_stats=tuple(condition_stats.get(entrant.horse_id, ())),
                sire_name=detail.sire_name if detail else None,
                trainer_id=detail.trainer_id if detail else None,
            )
            jockey = jockeys.get(entrant.jockey_id) if entrant.jockey_id is not None else None
            trainer = None
            if horse.trainer_id is not None:
                # A known trainer with no graded history still gets the unproven score
                trainer = trainers.get(horse.trainer_id) or TrainerProfile(id=horse.trainer_id, name="")

            components = horse.score(race, jockey, trainer, entrant.gate_number)
            scores.append(EntrantScore(
                entrant_id=entrant.horse_id,
                entrant_name=horse.name,
                gate_number=entrant.gate_number,
                components=components,
            ))

        logger.debug("Scored %d entrants for race %s", len(scores), race_id)
        return scores

    async def _load_jockeys(
        self, entrants: Sequence[Entrant], before: date
    ) -> dict[int, JockeyProfile]:
        jockey_ids = _unique(e.jockey_id for e in entrants)
        if not jockey_ids:
            return {}

        repo = self.repository
        venue_stats = await repo.batch_get_jockey_venue_stats(jockey_ids, before)
        overall = await repo.batch_get_jockey_overall_stats(jockey_ids, before)
        combos = await repo.batch_get_jockey_trainer_combo_stats(jockey_ids, before)

        names = {e.jockey_id: e.jockey_name or "" for e in entrants if e.jockey_id is not None}
        return {
            jid: JockeyProfile(
                id=jid,
                name=names.get(jid, ""),
                venue_stats={s.venue: s for s in venue_stats.get(jid, ())},
                overall=overall.get(jid),
                trainer_combos=dict(combos.get(jid, {})),
            )
            for jid in jockey_ids
        }
