"""Run the scoring backtest against the configured race database.

Usage (local):
    python scripts/run_backtest.py [--all-classes] [--limit N] [--weights data/optimal_weights.json]

Re-scores every race with recorded results (graded races by default), compares
the predicted order with the actual finish, and writes
data/backtest_results.json.
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from racescore.config import settings  # noqa: E402

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

OUTPUT_PATH = Path("data/backtest_results.json")


def load_weights(path: str | None) -> dict | None:
    """Read a weights JSON ({factor: weight} or a calibration result with "weights")."""
    if not path:
        return None
    with open(path, "r") as f:
        data = json.load(f)
    return data.get("weights", data)


async def main(args: argparse.Namespace) -> None:
    from racescore.backtest import run_backtest
    from racescore.models.database import async_session, init_db
    from racescore.repository import SqlScoringRepository

    await init_db()
    weights = load_weights(args.weights)

    start_time = time.time()
    async with async_session() as db:
        summary, records = await run_backtest(
            SqlScoringRepository(db),
            graded_only=not args.all_classes,
            limit=args.limit,
            weights=weights,
        )
    elapsed = time.time() - start_time

    output = summary.to_dict()
    output["elapsed_seconds"] = round(elapsed, 1)
    output["races"] = [
        {
            "race_id": r.race_id,
            "race_name": r.race_name,
            "date": r.race_date.isoformat(),
            "venue": r.venue,
            "top1_hit": r.metrics.top1_hit,
            "top3_overlap": r.metrics.top3_overlap,
            "top5_overlap": r.metrics.top5_overlap,
            "correlation": round(r.metrics.correlation, 4),
        }
        for r in records
    ]

    OUTPUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(OUTPUT_PATH, "w") as f:
        json.dump(output, f, indent=2, ensure_ascii=False)

    logger.info(
        f"Done in {elapsed:.1f}s: {summary.total_races} races "
        f"({summary.skipped_races} skipped), results written to {OUTPUT_PATH}"
    )
    for name, sim in summary.simulated_roi.items():
        logger.info(f"  {name:<9} bets={sim.bets:<4} hits={sim.hits:<4} roi={sim.roi:.2f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backtest the race scoring model")
    parser.add_argument("--all-classes", action="store_true",
                        default=not settings.backtest_graded_only,
                        help="Include non-graded races")
    parser.add_argument("--limit", type=int, default=settings.backtest_limit,
                        help="Only the latest N races")
    parser.add_argument("--weights", default=None, help="JSON file with factor weights")
    asyncio.run(main(parser.parse_args()))
