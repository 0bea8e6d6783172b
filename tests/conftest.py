"""Shared test fixtures for racescore."""

from datetime import date
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from racescore.models.database import Base
from racescore.models.racing import Horse, Jockey, Race, RaceEntry, Trainer


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture
async def seeded_db(db_session) -> AsyncSession:
    """Two trainers, two jockeys, three horses, two past races and one upcoming race.

    Race 1 (G1, Tokyo, 2024-10-27) and race 2 (Kyoto, 2024-12-01) have results;
    race 3 (Tokyo, 2025-01-05) is the race to score, horse 3 has no history.
    """
    db_session.add_all([
        Trainer(id=1, name="Kunieda"),
        Trainer(id=2, name="Yahagi"),
        Jockey(id=1, name="Lemaire"),
        Jockey(id=2, name="Take"),
        Horse(id=1, name="Equinox", sire_name="Kitasan Black", trainer_id=1),
        Horse(id=2, name="Do Deuce", sire_name="Heart's Cry", trainer_id=2),
        Horse(id=3, name="Newcomer", trainer_id=None),
        Race(id=1, name="Tenno Sho (Autumn)", venue="Tokyo", date=date(2024, 10, 27),
             distance=2000, surface="芝", race_class="G1", track_condition="良"),
        Race(id=2, name="Kyoto Allowance", venue="Kyoto", date=date(2024, 12, 1),
             distance=1800, surface="turf", race_class="3勝クラス", track_condition="稍重"),
        Race(id=3, name="Nakayama Kimpai", venue="Tokyo", date=date(2025, 1, 5),
             distance=2000, surface="turf", race_class="G3", track_condition="good"),
    ])
    await db_session.flush()
    db_session.add_all([
        RaceEntry(race_id=1, horse_id=1, jockey_id=1, gate_number=7, horse_number=7,
                  popularity=1, finish_position=1, last_3f_time=34.2),
        RaceEntry(race_id=1, horse_id=2, jockey_id=2, gate_number=3, horse_number=3,
                  popularity=3, finish_position=2, last_3f_time=34.5),
        RaceEntry(race_id=2, horse_id=2, jockey_id=1, gate_number=1, horse_number=1,
                  popularity=1, finish_position=3, last_3f_time=35.0),
        RaceEntry(race_id=3, horse_id=1, jockey_id=1, gate_number=2, horse_number=2, popularity=1),
        RaceEntry(race_id=3, horse_id=2, jockey_id=2, gate_number=5, horse_number=1, popularity=2),
        RaceEntry(race_id=3, horse_id=3, jockey_id=None, gate_number=9, horse_number=3, popularity=3),
    ])
    await db_session.commit()
    return db_session
