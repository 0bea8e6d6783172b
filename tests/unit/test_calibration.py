"""Tests for ridge-regression weight calibration."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from racescore.calibration import (
    CalibrationResult,
    calibrate,
    collect_labeled_samples,
    finish_label,
    fit_weights,
)
from racescore.components import DEFAULT_WEIGHTS, FEATURE_NAMES, ScoreComponents
from racescore.orchestrator import Entrant
from racescore.profiles.race import RaceContext
from racescore.repository import SqlScoringRepository


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _predictive_samples(n=40):
    """recent_performance tracks the label exactly; post position is noise."""
    samples = []
    for i in range(n):
        pos = i % 18 + 1
        components = ScoreComponents(
            recent_performance=finish_label(pos) * 100,
            post_position_effect=(i * 37) % 100,
        )
        samples.append((components, pos))
    return samples


class TestFinishLabel:
    def test_endpoints(self):
        assert finish_label(1) == 1.0
        assert finish_label(18) == pytest.approx(0.0)
        assert finish_label(25) == 0.0

    def test_linear(self):
        assert finish_label(10) == pytest.approx(1 - 9 / 17)


class TestFitWeights:
    def test_too_few_samples_is_noop(self):
        result = fit_weights(_predictive_samples(19))
        assert result.weights == DEFAULT_WEIGHTS
        assert result.improvement_percent == 0
        assert result.fitted is False
        assert result.sample_count == 19

    def test_noop_keeps_custom_weights(self):
        custom = {name: 0.1 for name in FEATURE_NAMES}
        result = fit_weights([], current_weights=custom)
        assert result.weights == custom

    def test_weights_normalized(self):
        result = fit_weights(_predictive_samples(), regularization=0.01)
        assert result.fitted
        assert sum(result.weights.values()) == pytest.approx(1.0)
        assert all(w >= 0 for w in result.weights.values())
        assert set(result.weights) == set(FEATURE_NAMES)

    def test_predictive_factor_dominates(self):
        result = fit_weights(_predictive_samples(), regularization=0.01)
        best = max(result.weights, key=result.weights.get)
        assert best == "recent_performance"
        assert result.weights["recent_performance"] > 0.5

    def test_improvement_reported(self):
        result = fit_weights(_predictive_samples(), regularization=0.01)
        assert result.improvement_percent > 0

    def test_no_signal_keeps_current(self):
        samples = [(ScoreComponents(), pos % 18 + 1) for pos in range(25)]
        result = fit_weights(samples)
        assert result.fitted is False
        assert result.weights == DEFAULT_WEIGHTS
        assert result.sample_count == 25

    def test_min_samples_configurable(self):
        result = fit_weights(_predictive_samples(10), min_samples=5)
        assert result.fitted


class TestCalibrationResult:
    def test_comparison(self):
        result = fit_weights(_predictive_samples(), regularization=0.01)
        rows = result.comparison()
        assert [r["factor"] for r in rows] == list(FEATURE_NAMES)
        recent = rows[0]
        assert recent["current"] == 0.22
        assert recent["diff"] == pytest.approx(recent["optimized"] - 0.22, abs=1e-4)

    def test_to_dict(self):
        data = CalibrationResult(weights=dict(DEFAULT_WEIGHTS), current_weights=dict(DEFAULT_WEIGHTS)).to_dict()
        assert data["fitted"] is False
        assert data["improvement_percent"] == 0
        assert len(data["comparison"]) == 10


class TestCollectSamples:
    async def test_collects_from_database(self, seeded_db):
        samples = await collect_labeled_samples(SqlScoringRepository(seeded_db))
        assert sorted(pos for _, pos in samples) == [1, 2, 3]

    async def test_calibrate_with_little_history(self, seeded_db):
        result = await calibrate(SqlScoringRepository(seeded_db))
        assert result.fitted is False
        assert result.sample_count == 3

    async def test_failing_race_skipped(self):
        good = RaceContext(id=2, name="Good", venue="Tokyo", distance=1600, date=date(2026, 1, 1))
        bad = RaceContext(id=1, name="Bad", venue="Tokyo", distance=1600, date=date(2025, 12, 1))
        repo = MagicMock()
        repo.get_races_with_results = AsyncMock(return_value=[bad, good])
        repo.get_race_context = AsyncMock(side_effect=[RuntimeError("corrupt row"), good])
        repo.get_entrants = AsyncMock(return_value=[Entrant(horse_id=5, horse_name="H")])
        for name in ("batch_get_horse_details", "batch_get_race_results", "batch_get_venue_stats",
                     "batch_get_track_condition_stats"):
            setattr(repo, name, AsyncMock(return_value={}))
        repo.get_finish_positions = AsyncMock(return_value={5: 2})

        samples = await collect_labeled_samples(repo)
        assert len(samples) == 1
        assert samples[0][1] == 2
