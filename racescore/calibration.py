"""Ridge-regression weight calibration.

Fits the ten factor weights against historical finishing positions:

    features  x = ScoreComponents.to_feature_vector()   (each 0-1)
    label     y = max(0, 1 - (finish_position - 1) / 17)
    solve     (XᵀX + λnI) w = Xᵀy

The solved weights are clipped to non-negative and renormalized to sum to
1.0, then compared with the current weights by squared error over the same
samples. Fitting returns an immutable CalibrationResult; nothing is cached
between calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

import numpy as np

from racescore.components import DEFAULT_WEIGHTS, FEATURE_NAMES, ScoreComponents
from racescore.orchestrator import ScoringOrchestrator, ScoringRepository

logger = logging.getLogger(__name__)

DEFAULT_REGULARIZATION = 0.1
MIN_SAMPLES = 20
# Finish position that maps to a label of 0.0 (full 18-runner field)
LABEL_FIELD_SIZE = 18

Sample = tuple[ScoreComponents, int]


def finish_label(finish_position: int) -> float:
    """1st -> 1.0, 18th (or worse) -> 0.0, linear in between."""
    return max(0.0, 1.0 - (finish_position - 1) / (LABEL_FIELD_SIZE - 1))


@dataclass(frozen=True)
class CalibrationResult:
    """Outcome of a weight fit."""

    weights: dict[str, float]
    current_weights: dict[str, float]
    improvement_percent: float = 0.0
    sample_count: int = 0
    regularization: float = DEFAULT_REGULARIZATION
    fitted: bool = False
    raw_coefficients: tuple[float, ...] = field(default=(), repr=False)

    def comparison(self) -> list[dict]:
        """Per-factor current vs optimized weight."""
        return [
            {
                "factor": name,
                "current": round(self.current_weights.get(name, 0.0), 4),
                "optimized": round(self.weights.get(name, 0.0), 4),
                "diff": round(self.weights.get(name, 0.0) - self.current_weights.get(name, 0.0), 4),
            }
            for name in FEATURE_NAMES
        ]

    def to_dict(self) -> dict:
        return {
            "weights": {k: round(v, 4) for k, v in self.weights.items()},
            "improvement_percent": round(self.improvement_percent, 2),
            "sample_count": self.sample_count,
            "regularization": self.regularization,
            "fitted": self.fitted,
            "comparison": self.comparison(),
        }


def _weight_vector(weights: Mapping[str, float]) -> np.ndarray:
    return np.array([weights.get(name, 0.0) for name in FEATURE_NAMES], dtype=float)


def _normalize(coefficients: np.ndarray) -> Optional[np.ndarray]:
    """Clip to non-negative and scale to sum 1; None if nothing is positive."""
    clipped = np.clip(coefficients, 0.0, None)
    total = clipped.sum()
    if total <= 0:
        return None
    return clipped / total


def fit_weights(
    samples: Sequence[Sample],
    current_weights: Optional[Mapping[str, float]] = None,
    regularization: float = DEFAULT_REGULARIZATION,
    min_samples: int = MIN_SAMPLES,
) -> CalibrationResult:
    """Fit factor weights by ridge regression.

    Args:
        samples: (components, finish_position) pairs.
        current_weights: Baseline to compare against (DEFAULT_WEIGHTS if None).
        regularization: λ, scaled by the sample count.
        min_samples: Below this, the current weights are returned unchanged.

    Returns:
        CalibrationResult. ``fitted`` is False when the current weights were
        kept (too few samples, or every solved coefficient was non-positive).
    """
    current = dict(current_weights) if current_weights is not None else dict(DEFAULT_WEIGHTS)
    n = len(samples)

    if n < min_samples:
        logger.info("Calibration skipped: %d samples (need %d)", n, min_samples)
        return CalibrationResult(
            weights=dict(current),
            current_weights=current,
            sample_count=n,
            regularization=regularization,
        )

    X = np.array([components.to_feature_vector() for components, _ in samples], dtype=float)
    y = np.array([finish_label(pos) for _, pos in samples], dtype=float)

    k = X.shape[1]
    A = X.T @ X + regularization * n * np.eye(k)
    b = X.T @ y
    try:
        coefficients = np.linalg.solve(A, b)
    except np.linalg.LinAlgError:
        # Singular only when λ is 0 and features are collinear
        coefficients = np.linalg.lstsq(A, b, rcond=None)[0]

    optimized = _normalize(coefficients)
    if optimized is None:
        logger.warning("Calibration produced no positive coefficients; keeping current weights")
        return CalibrationResult(
            weights=dict(current),
            current_weights=current,
            sample_count=n,
            regularization=regularization,
            raw_coefficients=tuple(float(v) for v in coefficients),
        )

    sse_current = float(np.sum((X @ _weight_vector(current) - y) ** 2))
    sse_optimized = float(np.sum((X @ optimized - y) ** 2))
    improvement = (sse_current - sse_optimized) / sse_current * 100 if sse_current > 0 else 0.0

    weights = {name: float(w) for name, w in zip(FEATURE_NAMES, optimized)}
    logger.info(
        "Calibrated %d samples (lambda=%.3f): improvement %.2f%%",
        n, regularization, improvement,
    )
    return CalibrationResult(
        weights=weights,
        current_weights=current,
        improvement_percent=improvement,
        sample_count=n,
        regularization=regularization,
        fitted=True,
        raw_coefficients=tuple(float(v) for v in coefficients),
    )


async def collect_labeled_samples(
    repository: ScoringRepository,
    graded_only: bool = False,
    limit: Optional[int] = None,
) -> list[Sample]:
    """Score historical races and pair each entrant with its finish position."""
    orchestrator = ScoringOrchestrator(repository)
    races = await repository.get_races_with_results(graded_only=graded_only, limit=limit)

    samples: list[Sample] = []
    for race in races:
        try:
            scores = await orchestrator.score_race(race.id)
            positions = await repository.get_finish_positions(race.id)
        except Exception as e:
            logger.warning("Skipping race %s (%s) for calibration: %s", race.id, race.name, e)
            continue
        for score in scores:
            pos = positions.get(score.entrant_id)
            if pos is not None:
                samples.append((score.components, pos))

    logger.info("Collected %d labeled samples from %d races", len(samples), len(races))
    return samples


async def calibrate(
    repository: ScoringRepository,
    current_weights: Optional[Mapping[str, float]] = None,
    regularization: float = DEFAULT_REGULARIZATION,
    min_samples: int = MIN_SAMPLES,
    graded_only: bool = False,
    limit: Optional[int] = None,
) -> CalibrationResult:
    """Collect historical samples and fit weights in one call."""
    samples = await collect_labeled_samples(repository, graded_only=graded_only, limit=limit)
    return fit_weights(samples, current_weights, regularization, min_samples)
