#!/usr/bin/env python3
"""
Compare the three aggregation strategies on one generated dataset.
Generates data, runs each strategy N times, checks they agree, then clears the data.

Run from backend directory:
  python scripts/benchmark_aggregation.py

Options:
  --rounds N      Runs per strategy (default 3)
  --workers N     Worker count for fan-out strategies
  --keep          Do not clear the dataset afterwards
"""

import asyncio
import argparse
import logging
import statistics
import sys
from pathlib import Path

# Ensure backend root is on path
backend_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_root))

from metrics_aggregator.config import get_settings
from metrics_aggregator.database import get_engine, init_db
from metrics_aggregator.exceptions import MetricsAggregatorError
from metrics_aggregator.schemas import AggregationStrategy
from metrics_aggregator.services.aggregation_service import AggregationService
from metrics_aggregator.services.generator_service import GeneratorService
from metrics_aggregator.services.store_service import MetricsStore

logger = logging.getLogger("benchmark_aggregation")


async def benchmark(rounds: int, workers: int | None, keep: bool) -> int:
    settings = get_settings()
    engine = get_engine()
    store = MetricsStore(engine)
    try:
        await init_db(engine)
        generator = GeneratorService(store, settings)
        await generator.generate(n_ad_accounts=1000, n_campaigns=100, n_ads=100, n_metrics=100, n_days=365)

        service = AggregationService(store, workers=workers, settings=settings)
        reference = None
        for strategy in AggregationStrategy:
            timings = []
            for _ in range(rounds):
                result = await service.aggregate(strategy)
                timings.append(result.elapsed_seconds)
                if reference is None:
                    reference = result.totals
                elif result.totals != reference:
                    logger.error(f"{strategy.value} disagrees with the first strategy's totals")
                    return 1
            print(
                f"  {strategy.value:<15} workers={result.workers:<3} "
                f"mean={statistics.mean(timings):.3f}s min={min(timings):.3f}s"
            )

        if not keep:
            await generator.reset()
    except MetricsAggregatorError as e:
        logger.error(f"Benchmark aborted: {e}", exc_info=True)
        return 1
    finally:
        await engine.dispose()
    return 0


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Benchmark aggregation strategies")
    parser.add_argument("--rounds", type=int, default=3, help="Runs per strategy")
    parser.add_argument("--workers", type=int, default=None, help="Workers for fan-out strategies")
    parser.add_argument("--keep", action="store_true", help="Keep generated data afterwards")
    args = parser.parse_args(argv)
    if args.rounds < 1:
        parser.error("--rounds must be at least 1")
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")

    logging.basicConfig(level=logging.WARNING)
    print(f"Benchmarking aggregation strategies ({args.rounds} rounds each)...")
    return await benchmark(args.rounds, args.workers, args.keep)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
