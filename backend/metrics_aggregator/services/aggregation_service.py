"""
Aggregation Service — total metric value per campaign.

Three schedules over the same per-campaign SUM query:
- sequential:     accounts → campaigns, one query at a time
- by-ad-account:  accounts fanned out to workers, private partials merged after join
- by-campaign:    campaigns pre-walked, fanned out, written to one lock-guarded map

All three return the same {campaign_id: total} mapping; entry order is not guaranteed.
"""

import asyncio
import logging
import time
from typing import Optional
from metrics_aggregator.config import Settings, get_settings
from metrics_aggregator.models import AdAccount, Campaign
from metrics_aggregator.schemas import AggregationResult, AggregationStrategy
from metrics_aggregator.services.store_service import MetricsStore
from metrics_aggregator.services.work_distributor import WorkDistributor

logger = logging.getLogger(__name__)


class AggregationService:
    def __init__(self, store: MetricsStore, workers: Optional[int] = None, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self.workers = workers if workers is not None else self.settings.worker_count
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    async def aggregate(self, strategy: AggregationStrategy = AggregationStrategy.SEQUENTIAL) -> AggregationResult:
        """Run one aggregation pass with the chosen strategy and time it."""
        strategy = AggregationStrategy(strategy)
        runners = {
            AggregationStrategy.SEQUENTIAL: self.aggregate_sequential,
            AggregationStrategy.BY_AD_ACCOUNT: self.aggregate_by_ad_account,
            AggregationStrategy.BY_CAMPAIGN: self.aggregate_by_campaign,
        }
        workers = 1 if strategy == AggregationStrategy.SEQUENTIAL else self.workers
        logger.info(f"Aggregating with strategy={strategy.value} workers={workers}")

        start = time.perf_counter()
        totals = await runners[strategy]()
        elapsed = time.perf_counter() - start

        logger.info(f"Aggregated {len(totals)} campaigns in {elapsed:.3f}s ({strategy.value})")
        return AggregationResult(strategy=strategy, workers=workers, totals=totals, elapsed_seconds=elapsed)

    async def aggregate_sequential(self) -> dict[int, float]:
        totals: dict[int, float] = {}

        logger.info("Getting ad account IDs")
        ad_accounts = await self.store.get_ad_accounts()

        logger.info(f"Processing {len(ad_accounts)} ad accounts")
        for ad_account in ad_accounts:
            campaigns = await self.store.get_campaigns_for_ad_account(ad_account.id)
            logger.debug(f"Ad account {ad_account.id}: {len(campaigns)} campaigns")

            account_start = time.perf_counter()
            for j, campaign in enumerate(campaigns, start=1):
                result = await self.store.aggregate_metrics_for_campaign(campaign.id)
                totals[campaign.id] = result.total_value

                if j % 3 == 0:
                    elapsed = time.perf_counter() - account_start
                    eta = elapsed / j * (len(campaigns) - j)
                    logger.debug(f"Processed {j}/{len(campaigns)} campaigns in {elapsed:.3f}s; estimated {eta:.3f}s till end")

        return totals

    async def aggregate_by_ad_account(self) -> dict[int, float]:
        logger.info("Getting ad account IDs")
        ad_accounts = await self.store.get_ad_accounts()
        logger.info(f"Processing {len(ad_accounts)} ad accounts on {self.workers} workers")

        distributor: WorkDistributor[AdAccount, dict[int, float]] = WorkDistributor(self.workers, name="ad-account")
        partials = await distributor.run(ad_accounts, self._aggregate_ad_account)

        # Fan-in: single-threaded merge once every worker has joined
        totals: dict[int, float] = {}
        for worker_partials in partials:
            for account_totals in worker_partials:
                totals.update(account_totals)
        return totals

    async def _aggregate_ad_account(self, ad_account: AdAccount) -> dict[int, float]:
        campaigns = await self.store.get_campaigns_for_ad_account(ad_account.id)
        logger.debug(f"Ad account {ad_account.id}: {len(campaigns)} campaigns")
        account_totals: dict[int, float] = {}
        for campaign in campaigns:
            result = await self.store.aggregate_metrics_for_campaign(campaign.id)
            account_totals[campaign.id] = result.total_value
        return account_totals

    async def aggregate_by_campaign(self) -> dict[int, float]:
        logger.info("Getting ad account IDs")
        ad_accounts = await self.store.get_ad_accounts()

        # Sequential pre-walk to build the flat campaign list
        campaigns: list[Campaign] = []
        for ad_account in ad_accounts:
            campaigns.extend(await self.store.get_campaigns_for_ad_account(ad_account.id))
        logger.info(f"Processing {len(campaigns)} campaigns on {self.workers} workers")

        totals: dict[int, float] = {}
        lock = asyncio.Lock()

        async def aggregate_campaign(campaign: Campaign) -> None:
            start = time.perf_counter()
            result = await self.store.aggregate_metrics_for_campaign(campaign.id)
            async with lock:
                totals[campaign.id] = result.total_value
            logger.debug(f"Processed campaign {campaign.id} in {time.perf_counter() - start:.3f}s")

        distributor: WorkDistributor[Campaign, None] = WorkDistributor(self.workers, name="campaign")
        await distributor.run(campaigns, aggregate_campaign)
        return totals
