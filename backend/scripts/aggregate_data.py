#!/usr/bin/env python3
"""
Sum metric values per campaign over the generated dataset.

Run from backend directory:
  python scripts/aggregate_data.py

Options:
  --strategy S   sequential | by-ad-account | by-campaign (default sequential)
  --workers N    Worker count for fan-out strategies (default: AGGREGATION_WORKERS or CPU count)
  --show         Print every campaign total
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path

# Ensure backend root is on path
backend_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_root))

from metrics_aggregator.config import get_settings
from metrics_aggregator.database import get_engine
from metrics_aggregator.exceptions import MetricsAggregatorError
from metrics_aggregator.schemas import AggregationStrategy
from metrics_aggregator.services.aggregation_service import AggregationService
from metrics_aggregator.services.store_service import MetricsStore

logger = logging.getLogger("aggregate_data")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Aggregate metrics per campaign")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in AggregationStrategy],
        default=AggregationStrategy.SEQUENTIAL.value,
        help="Scheduling strategy (default: sequential)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Workers for fan-out strategies")
    parser.add_argument("--show", action="store_true", help="Print every campaign total")
    return parser


async def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    engine = get_engine()
    try:
        service = AggregationService(MetricsStore(engine), workers=args.workers, settings=settings)
        result = await service.aggregate(AggregationStrategy(args.strategy))
    except MetricsAggregatorError as e:
        logger.error(f"Aggregation aborted: {e}", exc_info=True)
        return 1
    finally:
        await engine.dispose()

    if args.show:
        for campaign_id in sorted(result.totals):
            print(f"  Campaign {campaign_id}: {result.totals[campaign_id]:.2f}")
    print(
        f"Aggregated {result.campaign_count} campaigns (total {result.grand_total:.2f}) "
        f"in {result.elapsed_seconds:.3f}s using {result.strategy.value} with {result.workers} worker(s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
