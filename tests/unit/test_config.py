"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from racescore.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RACESCORE_RIDGE_LAMBDA", raising=False)
        s = Settings(_env_file=None)
        assert s.ridge_lambda == 0.1
        assert s.calibration_min_samples == 20
        assert s.backtest_graded_only is True
        assert s.backtest_limit is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RACESCORE_DB_PATH", "/tmp/test.db")
        monkeypatch.setenv("RACESCORE_RIDGE_LAMBDA", "0.5")
        s = Settings(_env_file=None)
        assert s.db_path == Path("/tmp/test.db")
        assert s.ridge_lambda == 0.5
        assert s.database_url == "sqlite+aiosqlite:////tmp/test.db"

    def test_invalid_value_rejected(self, monkeypatch):
        monkeypatch.setenv("RACESCORE_CALIBRATION_MIN_SAMPLES", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
