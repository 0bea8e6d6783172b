"""Small correlation helpers shared by the backtester."""

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation; 0.0 when undefined (fewer than 2 pairs or zero variance)."""
    n = len(xs)
    if n < 2 or n != len(ys):
        return 0.0

    mx = sum(xs) / n
    my = sum(ys) / n
    cov = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
    var_x = sum((x - mx) ** 2 for x in xs)
    var_y = sum((y - my) ** 2 for y in ys)
    if var_x <= 0 or var_y <= 0:
        return 0.0
    r = cov / math.sqrt(var_x * var_y)
    return max(-1.0, min(1.0, r))


def _average_ranks(values: Sequence[float]) -> list[float]:
    """1-based ranks, ties sharing their mean rank."""
    order = sorted(range(len(values)), key=lambda i: values[i])
    ranks = [0.0] * len(values)
    i = 0
    while i < len(order):
        j = i
        while j + 1 < len(order) and values[order[j + 1]] == values[order[i]]:
            j += 1
        avg_rank = (i + j) / 2 + 1
        for k in range(i, j + 1):
            ranks[order[k]] = avg_rank
        i = j + 1
    return ranks


def spearman(xs: Sequence[float], ys: Sequence[float], min_pairs: int = 3) -> float:
    """Spearman rank correlation in [-1, 1]; 0.0 below ``min_pairs`` or when undefined."""
    if len(xs) < min_pairs or len(xs) != len(ys):
        return 0.0
    return pearson(_average_ranks(xs), _average_ranks(ys))
