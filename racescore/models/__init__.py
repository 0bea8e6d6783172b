"""Database models."""

from racescore.models.database import Base, async_session, init_db
from racescore.models.racing import Horse, Jockey, Race, RaceEntry, Trainer

__all__ = ["Base", "async_session", "init_db", "Horse", "Jockey", "Race", "RaceEntry", "Trainer"]
