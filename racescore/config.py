"""Application configuration using Pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RACESCORE_",
        extra="ignore",
    )

    # Database
    db_path: Path = Path("./data/racescore.db")

    # App
    debug: bool = False
    log_level: str = "INFO"

    # Calibration
    ridge_lambda: float = Field(default=0.1, ge=0.0)
    calibration_min_samples: int = Field(default=20, ge=1)

    # Backtest
    backtest_graded_only: bool = True
    backtest_limit: Optional[int] = Field(default=None, ge=1)

    @property
    def database_url(self) -> str:
        """SQLite database URL for SQLAlchemy."""
        return f"sqlite+aiosqlite:///{self.db_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
