"""Backtest the scoring model against recorded finishing orders.

Each historical race is re-scored with history cut off before the race
date, ranked by total score, and compared with the actual result. The
summary aggregates hit rates, rank correlation, an illustrative flat-odds
return simulation and per-factor correlation with finishing position.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

from racescore.components import DEFAULT_WEIGHTS, FEATURE_NAMES, ScoreComponents
from racescore.orchestrator import EntrantScore, ScoringOrchestrator, ScoringRepository
from racescore.profiles.race import RaceContext
from racescore.stats import mean, pearson, spearman

logger = logging.getLogger(__name__)

# Illustrative fixed odds per bet type; not market prices
BET_TYPE_ODDS = {
    "win": 5.0,        # top pick wins
    "show": 1.8,       # top pick finishes top 3
    "trio_box": 15.0,  # predicted top 3 fill the first three places in any order
}
MIN_FIELD_FOR_ROI = 3

MIN_CONTRIBUTION_PAIRS = 10

# Weight suggestion thresholds
INCREASE_CORRELATION = 0.15
INCREASE_MAX_WEIGHT = 0.20
DECREASE_CORRELATION = 0.05
DECREASE_MIN_WEIGHT = 0.08


@dataclass(frozen=True)
class Prediction:
    entrant_id: int
    entrant_name: str
    predicted_rank: int
    total: float
    components: ScoreComponents


@dataclass(frozen=True)
class ActualFinish:
    entrant_id: int
    finish_position: int


@dataclass(frozen=True)
class RaceMetrics:
    top1_hit: bool
    top3_overlap: int
    top5_overlap: int
    correlation: float


@dataclass(frozen=True)
class BacktestRecord:
    """Predicted vs actual order for one race."""

    race_id: int
    race_name: str
    race_date: date
    venue: str
    predictions: tuple[Prediction, ...]
    actuals: tuple[ActualFinish, ...]
    metrics: RaceMetrics

    def finish_of(self, entrant_id: int) -> Optional[int]:
        for actual in self.actuals:
            if actual.entrant_id == entrant_id:
                return actual.finish_position
        return None


@dataclass(frozen=True)
class BetSimulation:
    bets: int = 0
    hits: int = 0
    odds: float = 0.0

    @property
    def hit_rate(self) -> float:
        return self.hits / self.bets if self.bets else 0.0

    @property
    def roi(self) -> float:
        """Return per unit staked (1.0 = break even)."""
        return self.hits * self.odds / self.bets if self.bets else 0.0


@dataclass(frozen=True)
class FactorContribution:
    factor: str
    correlation: float
    sample_count: int


@dataclass(frozen=True)
class BacktestSummary:
    total_races: int
    skipped_races: int = 0
    top1_rate: float = 0.0
    top3_rate: float = 0.0
    top5_rate: float = 0.0
    avg_correlation: float = 0.0
    factor_contributions: tuple[FactorContribution, ...] = ()
    simulated_roi: dict[str, BetSimulation] = field(default_factory=dict)
    suggestions: tuple[dict, ...] = ()

    def to_dict(self) -> dict:
        return {
            "total_races": self.total_races,
            "skipped_races": self.skipped_races,
            "top1_rate": round(self.top1_rate, 4),
            "top3_rate": round(self.top3_rate, 4),
            "top5_rate": round(self.top5_rate, 4),
            "avg_correlation": round(self.avg_correlation, 4),
            "factor_contributions": [
                {"factor": fc.factor, "correlation": round(fc.correlation, 4), "samples": fc.sample_count}
                for fc in self.factor_contributions
            ],
            "simulated_roi": {
                name: {"bets": sim.bets, "hits": sim.hits, "odds": sim.odds,
                       "hit_rate": round(sim.hit_rate, 4), "roi": round(sim.roi, 4)}
                for name, sim in self.simulated_roi.items()
            },
            "suggestions": list(self.suggestions),
        }


# ──────────────────────────────────────────────
# Per-race evaluation
# ──────────────────────────────────────────────

def rank_predictions(
    scores: Sequence[EntrantScore], weights: Optional[Mapping[str, float]] = None
) -> list[Prediction]:
    """Stable sort by total descending; ties keep entry order."""
    totals = [s.components.total(weights) for s in scores]
    order = sorted(range(len(scores)), key=lambda i: totals[i], reverse=True)
    return [
        Prediction(
            entrant_id=scores[i].entrant_id,
            entrant_name=scores[i].entrant_name,
            predicted_rank=rank,
            total=totals[i],
            components=scores[i].components,
        )
        for rank, i in enumerate(order, start=1)
    ]


def evaluate_race(
    race: RaceContext,
    scores: Sequence[EntrantScore],
    finish_positions: Mapping[int, int],
    weights: Optional[Mapping[str, float]] = None,
) -> Optional[BacktestRecord]:
    """Compare the model's ranking with the recorded finish.

    Hits count by finish position: the top pick must have finished first,
    and top-N overlap counts every entrant placed N or better, so dead heats
    can put more than N entrants in the actual top N. The entrant-id
    tie-break in ``actuals`` only orders the listing.

    Returns None when there is nothing to compare (no scores or no
    recorded finishes).
    """
    if not scores or not finish_positions:
        return None

    predictions = rank_predictions(scores, weights)
    actuals = sorted(
        (ActualFinish(entrant_id=eid, finish_position=pos) for eid, pos in finish_positions.items()),
        key=lambda a: (a.finish_position, a.entrant_id),
    )

    predicted_ids = [p.entrant_id for p in predictions]
    actual_top3 = {eid for eid, pos in finish_positions.items() if pos <= 3}
    actual_top5 = {eid for eid, pos in finish_positions.items() if pos <= 5}

    pairs = [
        (p.predicted_rank, finish_positions[p.entrant_id])
        for p in predictions if p.entrant_id in finish_positions
    ]
    metrics = RaceMetrics(
        top1_hit=finish_positions.get(predicted_ids[0]) == 1,
        top3_overlap=len(set(predicted_ids[:3]) & actual_top3),
        top5_overlap=len(set(predicted_ids[:5]) & actual_top5),
        correlation=spearman([p[0] for p in pairs], [p[1] for p in pairs]),
    )
    return BacktestRecord(
        race_id=race.id,
        race_name=race.name,
        race_date=race.date,
        venue=race.venue,
        predictions=tuple(predictions),
        actuals=tuple(actuals),
        metrics=metrics,
    )


# ──────────────────────────────────────────────
# Aggregation
# ──────────────────────────────────────────────

def simulate_roi(records: Sequence[BacktestRecord]) -> dict[str, BetSimulation]:
    """Flat-stake return per bet type at the fixed odds in BET_TYPE_ODDS.

    Only races with at least three predictions and three recorded finishes
    are bet on.
    """
    bets = 0
    hits = {name: 0 for name in BET_TYPE_ODDS}
    for record in records:
        if len(record.predictions) < MIN_FIELD_FOR_ROI or len(record.actuals) < MIN_FIELD_FOR_ROI:
            continue
        bets += 1
        top_pick = record.finish_of(record.predictions[0].entrant_id)
        if top_pick == 1:
            hits["win"] += 1
        if top_pick is not None and top_pick <= 3:
            hits["show"] += 1
        top3 = [record.finish_of(p.entrant_id) for p in record.predictions[:3]]
        if all(pos is not None and pos <= 3 for pos in top3):
            hits["trio_box"] += 1

    return {
        name: BetSimulation(bets=bets, hits=hits[name], odds=odds)
        for name, odds in BET_TYPE_ODDS.items()
    }


def factor_contributions(records: Sequence[BacktestRecord]) -> list[FactorContribution]:
    """Negated correlation of each raw factor score with finish position.

    Positive means higher scores went with better (lower) finishes. Factors
    with fewer than 10 paired observations report 0.0. Sorted descending.
    """
    pairs: list[tuple[ScoreComponents, int]] = []
    for record in records:
        for p in record.predictions:
            pos = record.finish_of(p.entrant_id)
            if pos is not None:
                pairs.append((p.components, pos))

    positions = [float(pos) for _, pos in pairs]
    contributions = []
    for name in FEATURE_NAMES:
        if len(pairs) < MIN_CONTRIBUTION_PAIRS:
            corr = 0.0
        else:
            values = [getattr(components, name) for components, _ in pairs]
            corr = -pearson(values, positions)
        contributions.append(FactorContribution(factor=name, correlation=corr, sample_count=len(pairs)))

    contributions.sort(key=lambda fc: fc.correlation, reverse=True)
    return contributions


def suggest_weight_changes(
    contributions: Sequence[FactorContribution],
    weights: Optional[Mapping[str, float]] = None,
) -> list[dict]:
    """Increase under-weighted predictive factors, decrease over-weighted weak ones."""
    w = DEFAULT_WEIGHTS if weights is None else weights
    suggestions = []
    for fc in contributions:
        current = w.get(fc.factor, 0.0)
        if fc.correlation > INCREASE_CORRELATION and current < INCREASE_MAX_WEIGHT:
            action = "increase"
        elif fc.correlation < DECREASE_CORRELATION and current > DECREASE_MIN_WEIGHT:
            action = "decrease"
        else:
            action = "keep"
        suggestions.append({
            "factor": fc.factor,
            "correlation": round(fc.correlation, 4),
            "current_weight": current,
            "action": action,
        })
    return suggestions


def summarize(
    records: Sequence[BacktestRecord],
    skipped: int = 0,
    weights: Optional[Mapping[str, float]] = None,
) -> BacktestSummary:
    """Aggregate per-race records into hit rates, correlation, ROI and factor analysis."""
    n = len(records)
    if n == 0:
        return BacktestSummary(
            total_races=0,
            skipped_races=skipped,
            simulated_roi=simulate_roi(records),
        )

    contributions = factor_contributions(records)
    return BacktestSummary(
        total_races=n,
        skipped_races=skipped,
        top1_rate=sum(1 for r in records if r.metrics.top1_hit) / n,
        top3_rate=sum(r.metrics.top3_overlap for r in records) / (n * 3),
        top5_rate=sum(r.metrics.top5_overlap for r in records) / (n * 5),
        avg_correlation=mean([r.metrics.correlation for r in records]),
        factor_contributions=tuple(contributions),
        simulated_roi=simulate_roi(records),
        suggestions=tuple(suggest_weight_changes(contributions, weights)),
    )


# ──────────────────────────────────────────────
# Runner
# ──────────────────────────────────────────────

async def run_backtest(
    repository: ScoringRepository,
    graded_only: bool = True,
    limit: Optional[int] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> tuple[BacktestSummary, list[BacktestRecord]]:
    """Replay the model over historical races, newest first.

    A race that fails to score or evaluate is logged, skipped and counted
    in ``skipped_races``; it never aborts the run.
    """
    orchestrator = ScoringOrchestrator(repository)
    races = await repository.get_races_with_results(graded_only=graded_only, limit=limit)
    logger.info("Backtesting %d races (graded_only=%s)", len(races), graded_only)

    records: list[BacktestRecord] = []
    skipped = 0
    for i, race in enumerate(races, start=1):
        try:
            scores = await orchestrator.score_race(race.id)
            positions = await repository.get_finish_positions(race.id)
            record = evaluate_race(race, scores, positions, weights)
        except Exception as e:
            logger.warning("Backtest skipped race %s (%s): %s", race.id, race.name, e)
            skipped += 1
            continue

        if record is None:
            logger.debug("Race %s has no comparable results", race.id)
            continue
        records.append(record)

        if i % 50 == 0:
            logger.info("Processed %d/%d races", i, len(races))

    summary = summarize(records, skipped=skipped, weights=weights)
    logger.info(
        "Backtest complete: %d races, top1 %.1f%%, top3 %.1f%%, avg rho %.3f",
        summary.total_races, summary.top1_rate * 100, summary.top3_rate * 100,
        summary.avg_correlation,
    )
    return summary, records
