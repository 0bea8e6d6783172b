"""Trainer profile and trainer-ability score."""

from dataclasses import dataclass

from racescore.components import clamp_score
from racescore.profiles import constants as c


@dataclass(frozen=True)
class TrainerProfile:
    """A trainer's G1 and graded-stakes record."""

    id: int
    name: str
    g1_runs: int = 0
    g1_wins: int = 0
    graded_runs: int = 0
    graded_wins: int = 0

    @staticmethod
    def _rate_score(wins: int, runs: int) -> float:
        rate = max(0.0, min(1.0, wins / runs))
        return rate * 100 * c.reliability(runs, c.G1_RELIABILITY, c.G1_RELIABILITY_FLOOR)

    def graded_score(self) -> float:
        if self.graded_runs <= 0:
            return c.TRAINER_GRADED_DEFAULT
        return self._rate_score(self.graded_wins, self.graded_runs)

    def g1_score(self) -> float:
        """G1 rate score; without G1 runs, half the graded score."""
        if self.g1_runs <= 0:
            return self.graded_score() * c.TRAINER_G1_FALLBACK_RATIO
        return self._rate_score(self.g1_wins, self.g1_runs)

    def score(self) -> float:
        """0.6 x G1 + 0.4 x graded. A trainer with no graded runs scores 21."""
        total = self.g1_score() * c.TRAINER_G1_WEIGHT + self.graded_score() * c.TRAINER_GRADED_WEIGHT
        return clamp_score(total)
