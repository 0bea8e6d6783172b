"""Models for races, horses, jockeys, trainers and race entries."""

import datetime
from typing import List, Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racescore.models.database import Base


class Race(Base):
    """A race on a specific date at a venue."""

    __tablename__ = "races"
    __table_args__ = (Index("ix_races_date", "date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    venue: Mapped[str] = mapped_column(String(100))
    date: Mapped[datetime.date] = mapped_column(Date)
    distance: Mapped[int] = mapped_column(Integer)
    surface: Mapped[str] = mapped_column(String(20), default="turf")  # turf, dirt, jump
    race_class: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # G1, G2, OP, 3勝クラス...
    track_condition: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=datetime.datetime.now)

    entries: Mapped[List["RaceEntry"]] = relationship(
        "RaceEntry", back_populates="race", cascade="all, delete-orphan"
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "venue": self.venue,
            "date": self.date.isoformat(),
            "distance": self.distance,
            "surface": self.surface,
            "race_class": self.race_class,
            "track_condition": self.track_condition,
        }


class Trainer(Base):
    __tablename__ = "trainers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class Jockey(Base):
    __tablename__ = "jockeys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class Horse(Base):
    """A horse, with its current trainer."""

    __tablename__ = "horses"
    __table_args__ = (Index("ix_horses_trainer_id", "trainer_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    sire_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    trainer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"), nullable=True)


class RaceEntry(Base):
    """A horse's entry in a race, including its result once run."""

    __tablename__ = "race_entries"
    __table_args__ = (
        UniqueConstraint("race_id", "horse_id", name="uq_race_entries_race_horse"),
        Index("ix_race_entries_horse_id", "horse_id"),
        Index("ix_race_entries_jockey_id", "jockey_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    race_id: Mapped[int] = mapped_column(ForeignKey("races.id"))
    horse_id: Mapped[int] = mapped_column(ForeignKey("horses.id"))
    jockey_id: Mapped[Optional[int]] = mapped_column(ForeignKey("jockeys.id"), nullable=True)
    gate_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    horse_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    popularity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1 = favourite
    odds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Result (null until the race is run, or for non-finishers)
    finish_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_3f_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    race: Mapped["Race"] = relationship("Race", back_populates="entries")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "race_id": self.race_id,
            "horse_id": self.horse_id,
            "jockey_id": self.jockey_id,
            "gate_number": self.gate_number,
            "horse_number": self.horse_number,
            "popularity": self.popularity,
            "odds": self.odds,
            "finish_position": self.finish_position,
            "last_3f_time": self.last_3f_time,
        }
