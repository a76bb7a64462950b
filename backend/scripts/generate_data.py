#!/usr/bin/env python3
"""
Generate a synthetic ad account / campaign / ad / metric dataset.
Existing generated data is cleared first.

Run from backend directory:
  python scripts/generate_data.py

Options:
  --adacc N       Number of ad accounts (default 400)
  --camp N        Number of campaigns (default 100)
  --ad N          Number of ads (default 1000)
  --met N         Number of metric series (default 1000)
  --days N        Days of values per metric series (default 365)
  --load-mode M   row | bulk | parallel (default bulk)
  --recreate      Drop and recreate all tables first (not allowed in production)
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
from metrics_aggregator.database import drop_and_recreate_db, get_engine, init_db
from metrics_aggregator.exceptions import GenerationPreconditionError, MetricsAggregatorError
from metrics_aggregator.schemas import LoadMode
from metrics_aggregator.services.generator_service import GeneratorService
from metrics_aggregator.services.store_service import MetricsStore

logger = logging.getLogger("generate_data")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate synthetic ad metrics data")
    parser.add_argument("--adacc", type=int, default=400, help="Number of AdAccounts to generate")
    parser.add_argument("--camp", type=int, default=100, help="Number of Campaigns to generate")
    parser.add_argument("--ad", type=int, default=1000, help="Number of Ads to generate")
    parser.add_argument("--met", type=int, default=1000, help="Number of Metrics to generate")
    parser.add_argument("--days", type=int, default=365, help="Number of days of Metrics to generate")
    parser.add_argument(
        "--load-mode",
        choices=[m.value for m in LoadMode],
        default=LoadMode.BULK.value,
        help="How metric rows are written (default: bulk)",
    )
    parser.add_argument("--recreate", action="store_true", help="Drop and recreate all tables before generating")
    return parser


async def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    if args.recreate and settings.is_production:
        parser.error("--recreate is disabled in production; use Alembic migrations")
    logging.basicConfig(level=settings.log_level.upper())

    engine = get_engine()
    try:
        if args.recreate:
            await drop_and_recreate_db(engine, settings)
        await init_db(engine)
        generator = GeneratorService(MetricsStore(engine), settings)
        summary = await generator.generate(
            n_ad_accounts=args.adacc,
            n_campaigns=args.camp,
            n_ads=args.ad,
            n_metrics=args.met,
            n_days=args.days,
            load_mode=LoadMode(args.load_mode),
        )
    except MetricsAggregatorError as e:
        logger.error(f"Generation aborted: {e}", exc_info=True)
        if not isinstance(e, GenerationPreconditionError):
            print("Store may be partially populated; re-run to clear and regenerate.")
        return 1
    finally:
        await engine.dispose()

    print(f"Done. Inserted {summary.metrics_inserted} metric rows in {summary.elapsed_seconds:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
