"""Calibrate factor weights by ridge regression on historical results.

Usage (local):
    python scripts/tune_weights.py [--lambda 0.1] [--graded-only] [--limit N]

Scores every race with recorded results, fits the ten factor weights against
finishing position and writes data/optimal_weights.json.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from racescore.config import settings  # noqa: E402

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

OUTPUT_PATH = Path("data/optimal_weights.json")


async def main(args: argparse.Namespace) -> None:
    from racescore.calibration import calibrate
    from racescore.models.database import async_session, init_db
    from racescore.repository import SqlScoringRepository

    await init_db()
    async with async_session() as db:
        result = await calibrate(
            SqlScoringRepository(db),
            regularization=args.regularization,
            min_samples=settings.calibration_min_samples,
            graded_only=args.graded_only,
            limit=args.limit,
        )

    if not result.fitted:
        logger.warning(f"Weights unchanged ({result.sample_count} samples)")

    for row in result.comparison():
        logger.info(
            f"  {row['factor']:<26} {row['current']:.3f} -> {row['optimized']:.3f} ({row['diff']:+.3f})"
        )
    logger.info(f"Improvement: {result.improvement_percent:.2f}%")

    OUTPUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(OUTPUT_PATH, "w") as f:
        json.dump(result.to_dict(), f, indent=2)
    logger.info(f"Written to {OUTPUT_PATH}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ridge-regression weight calibration")
    parser.add_argument("--lambda", dest="regularization", type=float, default=settings.ridge_lambda,
                        help="Regularization strength")
    parser.add_argument("--graded-only", action="store_true", help="Only graded races")
    parser.add_argument("--limit", type=int, default=None, help="Only the latest N races")
    asyncio.run(main(parser.parse_args()))
