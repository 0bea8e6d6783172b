"""Tests for backtest evaluation, aggregation and weight suggestions."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from racescore.backtest import (
    BET_TYPE_ODDS,
    FactorContribution,
    evaluate_race,
    factor_contributions,
    rank_predictions,
    run_backtest,
    simulate_roi,
    suggest_weight_changes,
    summarize,
)
from racescore.components import FEATURE_NAMES, ScoreComponents
from racescore.orchestrator import EntrantScore
from racescore.profiles.race import RaceContext
from racescore.repository import SqlScoringRepository
from racescore.stats import pearson, spearman

RACE = RaceContext(id=1, name="Test Stakes", venue="Tokyo", distance=2000, date=date(2026, 5, 3))


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _scores(*recent_values):
    """EntrantScore per value; entrant ids are 1..n in entry order."""
    return [
        EntrantScore(entrant_id=i, entrant_name=f"Horse {i}", gate_number=i,
                     components=ScoreComponents(recent_performance=v, venue_aptitude=v))
        for i, v in enumerate(recent_values, start=1)
    ]


def _record(recent_values, positions):
    return evaluate_race(RACE, _scores(*recent_values), positions)


class TestRankPredictions:
    def test_descending_with_stable_ties(self):
        preds = rank_predictions(_scores(50, 90, 50, 70))
        assert [p.entrant_id for p in preds] == [2, 4, 1, 3]
        assert [p.predicted_rank for p in preds] == [1, 2, 3, 4]

    def test_custom_weights_change_order(self):
        scores = [
            EntrantScore(entrant_id=1, entrant_name="A", gate_number=None,
                         components=ScoreComponents(recent_performance=90)),
            EntrantScore(entrant_id=2, entrant_name="B", gate_number=None,
                         components=ScoreComponents(trainer_ability=90)),
        ]
        preds = rank_predictions(scores, weights={"trainer_ability": 1.0})
        assert preds[0].entrant_id == 2


class TestEvaluateRace:
    def test_perfect_prediction(self):
        record = _record([90, 80, 70, 60, 50], {1: 1, 2: 2, 3: 3, 4: 4, 5: 5})
        assert record.metrics.top1_hit is True
        assert record.metrics.top3_overlap == 3
        assert record.metrics.top5_overlap == 5
        assert record.metrics.correlation == pytest.approx(1.0)

    def test_reversed_prediction(self):
        record = _record([50, 60, 70, 80, 90], {1: 1, 2: 2, 3: 3, 4: 4, 5: 5})
        assert record.metrics.top1_hit is False
        assert record.metrics.top3_overlap == 1
        assert record.metrics.correlation == pytest.approx(-1.0)

    def test_partial_overlap(self):
        record = _record([90, 80, 70, 60], {1: 2, 2: 4, 3: 1, 4: 3})
        assert record.metrics.top1_hit is False
        assert record.metrics.top3_overlap == 2

    def test_correlation_needs_three_pairs(self):
        record = _record([90, 80, 70], {1: 1, 2: 2})
        assert record.metrics.correlation == 0.0

    def test_nothing_to_compare(self):
        assert evaluate_race(RACE, [], {1: 1}) is None
        assert evaluate_race(RACE, _scores(50), {}) is None

    def test_actuals_sorted(self):
        record = _record([90, 80, 70], {1: 3, 2: 1, 3: 2})
        assert [a.entrant_id for a in record.actuals] == [2, 3, 1]
        assert record.finish_of(1) == 3
        assert record.finish_of(99) is None

    def test_top1_requires_winner(self):
        """A top pick that finished best among recorded entrants but not first is a miss."""
        record = _record([90, 80, 70, 60], {1: 2, 2: 3, 3: 4, 4: 5})
        assert record.metrics.top1_hit is False

    def test_dead_heat_counts_all_placed(self):
        # Entrants 2 and 3 dead-heat for third
        record = _record([90, 80, 70, 60], {4: 1, 1: 2, 2: 3, 3: 3})
        assert record.metrics.top1_hit is False
        assert record.metrics.top3_overlap == 3
        assert record.metrics.top5_overlap == 4

    def test_dead_heat_tie_break_irrelevant(self):
        """A tied entrant with the higher id still counts as placed."""
        record = _record([90, 80, 70, 60], {1: 1, 4: 2, 2: 3, 3: 3})
        assert [a.entrant_id for a in record.actuals] == [1, 4, 2, 3]
        assert record.metrics.top3_overlap == 3


class TestRankCorrelation:
    def test_bounds(self):
        assert -1.0 <= spearman([1, 2, 3, 4], [2, 1, 4, 3]) <= 1.0

    def test_ties_average_ranked(self):
        assert spearman([1, 2, 3], [1, 1, 1]) == 0.0
        assert spearman([1, 2, 3, 4], [1, 1, 2, 2]) == pytest.approx(0.894427, abs=1e-5)

    def test_pearson_degenerate(self):
        assert pearson([1.0], [2.0]) == 0.0
        assert pearson([1, 1, 1], [1, 2, 3]) == 0.0


class TestSimulateRoi:
    def test_win_show_trio(self):
        records = [
            _record([90, 80, 70, 60], {1: 1, 2: 2, 3: 3, 4: 4}),   # win, show, trio
            _record([90, 80, 70, 60], {1: 3, 2: 1, 3: 4, 4: 2}),   # show only
            _record([90, 80, 70, 60], {1: 4, 2: 1, 3: 2, 4: 3}),   # nothing
        ]
        roi = simulate_roi(records)
        assert roi["win"].bets == 3
        assert roi["win"].hits == 1
        assert roi["win"].roi == pytest.approx(5.0 / 3)
        assert roi["show"].hits == 2
        assert roi["show"].roi == pytest.approx(2 * 1.8 / 3)
        assert roi["trio_box"].hits == 1
        assert roi["trio_box"].roi == pytest.approx(15.0 / 3)

    def test_dead_heat_trio_agrees_with_overlap(self):
        record = _record([90, 80, 70, 60], {4: 1, 1: 2, 2: 3, 3: 3})
        assert simulate_roi([record])["trio_box"].hits == 1
        assert record.metrics.top3_overlap == 3

    def test_small_fields_not_bet(self):
        roi = simulate_roi([_record([90, 80], {1: 1, 2: 2})])
        assert roi["win"].bets == 0
        assert roi["win"].roi == 0.0

    def test_all_bet_types_reported(self):
        assert set(simulate_roi([])) == set(BET_TYPE_ODDS)


class TestFactorContributions:
    def test_needs_ten_pairs(self):
        contributions = factor_contributions([_record([90, 80, 70], {1: 1, 2: 2, 3: 3})])
        assert all(fc.correlation == 0.0 for fc in contributions)
        assert len(contributions) == 10

    def test_predictive_factor_positive_and_first(self):
        records = [_record([90, 80, 70, 60], {1: 1, 2: 2, 3: 3, 4: 4}) for _ in range(3)]
        contributions = factor_contributions(records)
        assert contributions[0].correlation == pytest.approx(1.0)
        assert contributions[0].factor in ("recent_performance", "venue_aptitude")
        # Constant factors carry no signal
        by_factor = {fc.factor: fc.correlation for fc in contributions}
        assert by_factor["trainer_ability"] == 0.0

    def test_sorted_descending(self):
        records = [_record([60, 70, 80, 90], {1: 1, 2: 2, 3: 3, 4: 4}) for _ in range(3)]
        values = [fc.correlation for fc in factor_contributions(records)]
        assert values == sorted(values, reverse=True)
        assert values[-1] == pytest.approx(-1.0)


class TestSuggestWeightChanges:
    def _suggest(self, factor, correlation, weight):
        [s] = suggest_weight_changes(
            [FactorContribution(factor=factor, correlation=correlation, sample_count=50)],
            {factor: weight},
        )
        return s["action"]

    def test_increase(self):
        assert self._suggest("jockey_ability", 0.2, 0.08) == "increase"

    def test_already_heavy_not_increased(self):
        assert self._suggest("recent_performance", 0.3, 0.22) == "keep"

    def test_decrease(self):
        assert self._suggest("venue_aptitude", 0.01, 0.15) == "decrease"

    def test_light_weight_not_decreased(self):
        assert self._suggest("post_position_effect", -0.1, 0.05) == "keep"

    def test_defaults_to_default_weights(self):
        suggestions = suggest_weight_changes(
            [FactorContribution(factor="trainer_ability", correlation=0.5, sample_count=20)]
        )
        assert suggestions[0]["current_weight"] == 0.08
        assert suggestions[0]["action"] == "increase"


class TestSummarize:
    def test_rates(self):
        records = [
            _record([90, 80, 70, 60, 50], {1: 1, 2: 2, 3: 3, 4: 4, 5: 5}),
            _record([50, 60, 70, 80, 90], {1: 1, 2: 2, 3: 3, 4: 4, 5: 5}),
        ]
        summary = summarize(records, skipped=1)
        assert summary.total_races == 2
        assert summary.skipped_races == 1
        assert summary.top1_rate == pytest.approx(0.5)
        assert summary.top3_rate == pytest.approx((3 + 1) / 6)
        assert summary.top5_rate == pytest.approx(1.0)
        assert summary.avg_correlation == pytest.approx(0.0)
        assert 0.0 <= summary.top3_rate <= 1.0
        assert len(summary.suggestions) == len(FEATURE_NAMES)

    def test_empty(self):
        summary = summarize([])
        assert summary.total_races == 0
        assert summary.top1_rate == 0.0
        assert summary.simulated_roi["win"].bets == 0

    def test_to_dict(self):
        data = summarize([_record([90, 80, 70], {1: 1, 2: 2, 3: 3})]).to_dict()
        assert data["total_races"] == 1
        assert data["simulated_roi"]["trio_box"]["hits"] == 1
        assert len(data["factor_contributions"]) == 10


class TestRunBacktest:
    async def test_against_database(self, seeded_db):
        summary, records = await run_backtest(SqlScoringRepository(seeded_db), graded_only=True)
        assert summary.total_races == 1
        assert records[0].race_id == 1
        # Gate 3 outscores gate 7 when neither horse has history
        assert records[0].predictions[0].entrant_id == 2
        assert summary.top1_rate == 0.0
        assert summary.top3_rate == pytest.approx(2 / 3)

    async def test_all_classes(self, seeded_db):
        summary, _ = await run_backtest(SqlScoringRepository(seeded_db), graded_only=False)
        assert summary.total_races == 2

    async def test_failing_race_skipped(self):
        repo = MagicMock()
        repo.get_races_with_results = AsyncMock(return_value=[RACE])
        repo.get_race_context = AsyncMock(side_effect=ValueError("malformed"))
        summary, records = await run_backtest(repo)
        assert summary.total_races == 0
        assert summary.skipped_races == 1
        assert records == []
