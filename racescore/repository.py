"""SQLAlchemy implementation of the scoring repository.

Every batch method issues a single query keyed by an id set. Aggregate
records (venue, going, jockey and trainer stats) are derived from
race_entries rather than stored, so they can be cut off at any date.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from racescore.models.racing import Horse, Jockey, Race, RaceEntry, Trainer
from racescore.orchestrator import Entrant, HorseDetails
from racescore.profiles.horse import TrackConditionStat, VenueStat
from racescore.profiles.jockey import JockeyVenueStat, RecordStat
from racescore.profiles.race import (
    RaceContext,
    RaceResult,
    is_graded_class,
    is_g1_class,
    is_major_race_name,
    normalize_condition,
    normalize_surface,
)
from racescore.profiles.trainer import TrainerProfile

logger = logging.getLogger(__name__)


def _finish_count(position: int):
    return func.sum(case((RaceEntry.finish_position == position, 1), else_=0))


def _history_filter(before: Optional[date]):
    """Only runs with a recorded finish, in races before ``before``."""
    clauses = [RaceEntry.finish_position.is_not(None)]
    if before is not None:
        clauses.append(Race.date < before)
    return and_(*clauses)


def _race_context(race: Race) -> RaceContext:
    return RaceContext(
        id=race.id,
        name=race.name,
        venue=race.venue,
        distance=race.distance,
        date=race.date,
        surface=normalize_surface(race.surface),
        race_class=race.race_class,
        track_condition=normalize_condition(race.track_condition),
    )


class SqlScoringRepository:
    """Reads race history through an AsyncSession owned by the caller."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ──────────────────────────────────────────────
    # Races
    # ──────────────────────────────────────────────

    async def get_race_context(self, race_id: int) -> Optional[RaceContext]:
        race = await self.session.get(Race, race_id)
        if race is None:
            return None
        return _race_context(race)

    async def get_entrants(self, race_id: int) -> list[Entrant]:
        """Entrants in entry order (horse number, then insertion order)."""
        result = await self.session.execute(
            select(RaceEntry, Horse.name, Jockey.name)
            .join(Horse, Horse.id == RaceEntry.horse_id)
            .outerjoin(Jockey, Jockey.id == RaceEntry.jockey_id)
            .where(RaceEntry.race_id == race_id)
            .order_by(func.coalesce(RaceEntry.horse_number, 999), RaceEntry.id)
        )
        return [
            Entrant(
                horse_id=entry.horse_id,
                horse_name=horse_name,
                gate_number=entry.gate_number,
                horse_number=entry.horse_number,
                jockey_id=entry.jockey_id,
                jockey_name=jockey_name,
            )
            for entry, horse_name, jockey_name in result.all()
        ]

    async def get_races_with_results(
        self, graded_only: bool = False, limit: Optional[int] = None
    ) -> list[RaceContext]:
        """Races with at least one recorded finish, newest first."""
        has_result = (
            select(RaceEntry.id)
            .where(RaceEntry.race_id == Race.id, RaceEntry.finish_position.is_not(None))
            .exists()
        )
        result = await self.session.execute(
            select(Race).where(has_result).order_by(Race.date.desc(), Race.id.desc())
        )
        races = [_race_context(r) for r in result.scalars().all()]
        if graded_only:
            races = [r for r in races if r.is_graded or r.is_g1]
        if limit is not None:
            races = races[:limit]
        return races

    async def get_finish_positions(self, race_id: int) -> dict[int, int]:
        """horse_id -> finish position, for runners with a recorded finish."""
        result = await self.session.execute(
            select(RaceEntry.horse_id, RaceEntry.finish_position)
            .where(RaceEntry.race_id == race_id, RaceEntry.finish_position.is_not(None))
        )
        return {horse_id: pos for horse_id, pos in result.all()}

    # ──────────────────────────────────────────────
    # Horses
    # ──────────────────────────────────────────────

    async def batch_get_horse_details(self, horse_ids: Sequence[int]) -> dict[int, HorseDetails]:
        if not horse_ids:
            return {}
        result = await self.session.execute(select(Horse).where(Horse.id.in_(horse_ids)))
        return {
            h.id: HorseDetails(id=h.id, name=h.name, sire_name=h.sire_name, trainer_id=h.trainer_id)
            for h in result.scalars().all()
        }

    async def batch_get_race_results(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, list[RaceResult]]:
        """Past runs per horse, newest first."""
        results: dict[int, list[RaceResult]] = defaultdict(list)
        if not horse_ids:
            return results

        query = (
            select(RaceEntry, Race)
            .join(Race, Race.id == RaceEntry.race_id)
            .where(RaceEntry.horse_id.in_(horse_ids))
            .order_by(RaceEntry.horse_id, Race.date.desc(), Race.id.desc())
        )
        if before is not None:
            query = query.where(Race.date < before)

        rows = await self.session.execute(query)
        for entry, race in rows.all():
            results[entry.horse_id].append(RaceResult(
                race_id=race.id,
                race_name=race.name,
                date=race.date,
                distance=race.distance,
                venue=race.venue,
                surface=normalize_surface(race.surface),
                race_class=race.race_class,
                track_condition=normalize_condition(race.track_condition),
                jockey_id=entry.jockey_id,
                popularity=entry.popularity,
                finish_position=entry.finish_position,
                last_3f_time=entry.last_3f_time,
            ))
        return results

    async def batch_get_venue_stats(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, list[VenueStat]]:
        stats: dict[int, list[VenueStat]] = defaultdict(list)
        if not horse_ids:
            return stats

        rows = await self.session.execute(
            select(
                RaceEntry.horse_id,
                Race.venue,
                func.count(RaceEntry.id),
                _finish_count(1),
                _finish_count(2),
                _finish_count(3),
            )
            .join(Race, Race.id == RaceEntry.race_id)
            .where(RaceEntry.horse_id.in_(horse_ids), _history_filter(before))
            .group_by(RaceEntry.horse_id, Race.venue)
        )
        for horse_id, venue, runs, wins, seconds, thirds in rows.all():
            stats[horse_id].append(VenueStat(
                venue=venue, runs=runs, wins=wins or 0, places=seconds or 0, shows=thirds or 0,
            ))
        return stats

    async def batch_get_track_condition_stats(
        self, horse_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, list[TrackConditionStat]]:
        """Going records per horse; spellings of the same going are merged."""
        stats: dict[int, list[TrackConditionStat]] = defaultdict(list)
        if not horse_ids:
            return stats

        rows = await self.session.execute(
            select(
                RaceEntry.horse_id,
                Race.track_condition,
                func.count(RaceEntry.id),
                _finish_count(1),
                _finish_count(2),
                _finish_count(3),
            )
            .join(Race, Race.id == RaceEntry.race_id)
            .where(RaceEntry.horse_id.in_(horse_ids), _history_filter(before))
            .group_by(RaceEntry.horse_id, Race.track_condition)
        )
        merged: dict[tuple[int, str], list[int]] = defaultdict(lambda: [0, 0, 0, 0])
        for horse_id, condition, runs, wins, seconds, thirds in rows.all():
            acc = merged[(horse_id, normalize_condition(condition))]
            acc[0] += runs
            acc[1] += wins or 0
            acc[2] += seconds or 0
            acc[3] += thirds or 0

        for (horse_id, condition), (runs, wins, seconds, thirds) in merged.items():
            stats[horse_id].append(TrackConditionStat(
                track_condition=condition, runs=runs, wins=wins, places=seconds, shows=thirds,
            ))
        return stats

    # ──────────────────────────────────────────────
    # Jockeys
    # ──────────────────────────────────────────────

    async def batch_get_jockey_venue_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, list[JockeyVenueStat]]:
        """Venue records per jockey, with the G1 subset at each venue."""
        stats: dict[int, list[JockeyVenueStat]] = defaultdict(list)
        if not jockey_ids:
            return stats

        rows = await self.session.execute(
            select(RaceEntry.jockey_id, Race.venue, Race.race_class, Race.name, RaceEntry.finish_position)
            .join(Race, Race.id == RaceEntry.race_id)
            .where(RaceEntry.jockey_id.in_(jockey_ids), _history_filter(before))
        )
        # (jockey, venue) -> [runs, wins, g1_runs, g1_wins]
        acc: dict[tuple[int, str], list[int]] = defaultdict(lambda: [0, 0, 0, 0])
        for jockey_id, venue, race_class, race_name, position in rows.all():
            counts = acc[(jockey_id, venue)]
            won = position == 1
            counts[0] += 1
            counts[1] += won
            if is_g1_class(race_class) or is_major_race_name(race_name):
                counts[2] += 1
                counts[3] += won

        for (jockey_id, venue), (runs, wins, g1_runs, g1_wins) in acc.items():
            stats[jockey_id].append(JockeyVenueStat(
                venue=venue, runs=runs, wins=wins, g1_runs=g1_runs, g1_wins=g1_wins,
            ))
        return stats

    async def batch_get_jockey_overall_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, RecordStat]:
        if not jockey_ids:
            return {}
        rows = await self.session.execute(
            select(RaceEntry.jockey_id, func.count(RaceEntry.id), _finish_count(1))
            .join(Race, Race.id == RaceEntry.race_id)
            .where(RaceEntry.jockey_id.in_(jockey_ids), _history_filter(before))
            .group_by(RaceEntry.jockey_id)
        )
        return {jid: RecordStat(runs=runs, wins=wins or 0) for jid, runs, wins in rows.all()}

    async def batch_get_jockey_trainer_combo_stats(
        self, jockey_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, dict[int, RecordStat]]:
        """jockey_id -> trainer_id -> record riding that trainer's horses."""
        combos: dict[int, dict[int, RecordStat]] = defaultdict(dict)
        if not jockey_ids:
            return combos

        rows = await self.session.execute(
            select(RaceEntry.jockey_id, Horse.trainer_id, func.count(RaceEntry.id), _finish_count(1))
            .join(Race, Race.id == RaceEntry.race_id)
            .join(Horse, Horse.id == RaceEntry.horse_id)
            .where(
                RaceEntry.jockey_id.in_(jockey_ids),
                Horse.trainer_id.is_not(None),
                _history_filter(before),
            )
            .group_by(RaceEntry.jockey_id, Horse.trainer_id)
        )
        for jockey_id, trainer_id, runs, wins in rows.all():
            combos[jockey_id][trainer_id] = RecordStat(runs=runs, wins=wins or 0)
        return combos

    # ──────────────────────────────────────────────
    # Trainers
    # ──────────────────────────────────────────────

    async def batch_get_trainer_stats(
        self, trainer_ids: Sequence[int], before: Optional[date] = None
    ) -> dict[int, TrainerProfile]:
        """G1 and graded records per trainer (through their horses' runs).

        Every requested trainer that exists gets a profile, zero-filled when
        it has no graded runs.
        """
        if not trainer_ids:
            return {}

        names_result = await self.session.execute(
            select(Trainer.id, Trainer.name).where(Trainer.id.in_(trainer_ids))
        )
        names = dict(names_result.all())

        rows = await self.session.execute(
            select(Horse.trainer_id, Race.race_class, Race.name, RaceEntry.finish_position)
            .join(RaceEntry, RaceEntry.horse_id == Horse.id)
            .join(Race, Race.id == RaceEntry.race_id)
            .where(Horse.trainer_id.in_(trainer_ids), _history_filter(before))
        )
        # trainer -> [g1_runs, g1_wins, graded_runs, graded_wins]
        acc: dict[int, list[int]] = defaultdict(lambda: [0, 0, 0, 0])
        for trainer_id, race_class, race_name, position in rows.all():
            g1 = is_g1_class(race_class) or is_major_race_name(race_name)
            if not (g1 or is_graded_class(race_class)):
                continue
            won = position == 1
            counts = acc[trainer_id]
            counts[2] += 1
            counts[3] += won
            if g1:
                counts[0] += 1
                counts[1] += won

        profiles = {}
        for trainer_id, name in names.items():
            g1_runs, g1_wins, graded_runs, graded_wins = acc.get(trainer_id, (0, 0, 0, 0))
            profiles[trainer_id] = TrainerProfile(
                id=trainer_id,
                name=name,
                g1_runs=g1_runs,
                g1_wins=g1_wins,
                graded_runs=graded_runs,
                graded_wins=graded_wins,
            )
        return profiles
