"""
Generator Service — synthetic ad account / campaign / ad / metric hierarchy.

Fan-out is deterministic and uniform:
  campaign i → ad account (i mod n_ad_accounts)
  ad i       → campaign   (i mod n_campaigns)
  metric series i → ad    (i mod n_ads), one value per simulated day
"""

import logging
import time
from typing import Callable, Optional
from metrics_aggregator.config import Settings, get_settings
from metrics_aggregator.exceptions import GenerationPreconditionError
from metrics_aggregator.schemas import GenerationSummary, LoadMode, MetricRow
from metrics_aggregator.services.store_service import MetricsStore
from metrics_aggregator.services.work_distributor import WorkDistributor

logger = logging.getLogger(__name__)

# (series_index, day_index) -> value
ValueGenerator = Callable[[int, int], float]


def validate_scale(n_ad_accounts: int, n_campaigns: int, n_ads: int, n_metrics: int, n_days: int) -> None:
    """
    Reject counts the modulo distribution cannot work with.
    Accounts, campaigns and ads are divisors and must be positive; metrics and days may be 0.
    """
    counts = {
        "n_ad_accounts": n_ad_accounts,
        "n_campaigns": n_campaigns,
        "n_ads": n_ads,
        "n_metrics": n_metrics,
        "n_days": n_days,
    }
    for field, value in counts.items():
        if value < 0:
            raise GenerationPreconditionError(f"{field} must be non-negative, got {value}")
    for field in ("n_ad_accounts", "n_campaigns", "n_ads"):
        if counts[field] == 0:
            raise GenerationPreconditionError(f"{field} must be greater than 0")


def chunk_rows(rows: list[MetricRow], n_chunks: int) -> list[list[MetricRow]]:
    """Split rows into at most n_chunks contiguous slices of ceil(len / n_chunks) rows."""
    if not rows:
        return []
    size = (len(rows) + n_chunks - 1) // n_chunks
    return [rows[i:i + size] for i in range(0, len(rows), size)]


class GeneratorService:
    def __init__(
        self,
        store: MetricsStore,
        settings: Optional[Settings] = None,
        value_generator: Optional[ValueGenerator] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.value_generator = value_generator or self._fixed_value

    def _fixed_value(self, series_index: int, day_index: int) -> float:
        return self.settings.metric_default_value

    async def reset(self) -> None:
        """Clear all generated data, children first."""
        logger.info("Clearing test data")
        await self.store.clear_metrics()
        await self.store.clear_ads()
        await self.store.clear_campaigns()
        await self.store.clear_ad_accounts()

    async def generate(
        self,
        n_ad_accounts: int,
        n_campaigns: int,
        n_ads: int,
        n_metrics: int,
        n_days: int,
        load_mode: LoadMode = LoadMode.BULK,
    ) -> GenerationSummary:
        """
        Reset the store and load a fresh hierarchy.

        Any store error aborts the run and propagates; the store may be left
        partially populated, and the next run clears it first.
        """
        validate_scale(n_ad_accounts, n_campaigns, n_ads, n_metrics, n_days)
        start = time.perf_counter()

        await self.reset()

        logger.info(f"Generating {n_ad_accounts} test ad accounts")
        for i in range(n_ad_accounts):
            await self.store.create_ad_account(id=i, name=f"AdAccount {i}")

        logger.info(f"Generating {n_campaigns} test campaigns")
        for i in range(n_campaigns):
            await self.store.create_campaign(id=i, ad_account_id=i % n_ad_accounts, name=f"Campaign {i}")

        logger.info(f"Generating {n_ads} test ads")
        for i in range(n_ads):
            await self.store.create_ad(id=i, campaign_id=i % n_campaigns, name=f"Ad {i}")

        rows = self.build_metric_rows(n_metrics, n_ads, n_days)
        load_mode = LoadMode(load_mode)
        if load_mode == LoadMode.ROW:
            inserted = await self._load_row_by_row(rows)
        elif load_mode == LoadMode.PARALLEL:
            inserted = await self._load_parallel(rows, self.settings.bulk_insert_workers)
        else:
            inserted = await self._load_bulk(rows)

        elapsed = time.perf_counter() - start
        logger.info(f"Generation finished: {inserted} metric rows in {elapsed:.2f}s ({load_mode.value})")
        return GenerationSummary(
            n_ad_accounts=n_ad_accounts,
            n_campaigns=n_campaigns,
            n_ads=n_ads,
            n_metrics=n_metrics,
            n_days=n_days,
            load_mode=load_mode,
            metrics_inserted=inserted,
            elapsed_seconds=elapsed,
        )

    def build_metric_rows(self, n_metrics: int, n_ads: int, n_days: int) -> list[MetricRow]:
        """All n_metrics × n_days rows, series-major, built in memory before loading."""
        start_ts = self.settings.metric_start_timestamp
        step = self.settings.metric_interval_seconds
        rows: list[MetricRow] = []
        for i in range(n_metrics):
            ad_id = i % n_ads
            name = f"Metric {i}"
            for j in range(n_days):
                rows.append(MetricRow(name, ad_id, start_ts + j * step, float(self.value_generator(i, j))))
        return rows

    async def _load_bulk(self, rows: list[MetricRow]) -> int:
        logger.info(f"Starting bulk insert of {len(rows)} records")
        start = time.perf_counter()
        inserted = await self.store.bulk_insert_metrics(rows)
        logger.info(f"Inserted {inserted} records in {time.perf_counter() - start:.2f}s")
        return inserted

    async def _load_row_by_row(self, rows: list[MetricRow]) -> int:
        """One INSERT per row. Slow baseline; logs progress and an ETA periodically."""
        logger.info(f"Starting row-by-row insert of {len(rows)} records")
        interval = self.settings.progress_log_interval
        batch_start = time.perf_counter()
        for n, row in enumerate(rows, start=1):
            await self.store.create_metric(ad_id=row.ad_id, timestamp=row.timestamp, value=row.value, name=row.name)
            if n % interval == 0:
                elapsed = time.perf_counter() - batch_start
                remaining = elapsed * (len(rows) - n) / interval
                logger.info(f"Inserted {n} records, last {interval} in {elapsed:.2f}s; estimated {remaining:.0f}s till end")
                batch_start = time.perf_counter()
        return len(rows)

    async def _load_parallel(self, rows: list[MetricRow], n_workers: int) -> int:
        """Bulk insert contiguous chunks concurrently, one connection per worker."""
        chunks = chunk_rows(rows, n_workers)
        logger.info(f"Starting bulk insert of {len(rows)} records using {n_workers} workers")
        start = time.perf_counter()
        distributor: WorkDistributor[list[MetricRow], int] = WorkDistributor(n_workers, name="bulk-insert")
        partials = await distributor.run(chunks, self.store.bulk_insert_metrics)
        inserted = sum(sum(counts) for counts in partials)
        logger.info(f"Inserted {inserted} records in {time.perf_counter() - start:.2f}s using {n_workers} workers")
        return inserted
