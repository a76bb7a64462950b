"""
Result and row types shared by the generator, the store and the aggregation engine.
"""

import enum
from typing import NamedTuple
from pydantic import BaseModel, Field


class MetricRow(NamedTuple):
    """One metric row in COPY column order."""
    name: str
    ad_id: int
    timestamp: int
    value: float


class LoadMode(str, enum.Enum):
    ROW = "row"
    BULK = "bulk"
    PARALLEL = "parallel"


class AggregationStrategy(str, enum.Enum):
    SEQUENTIAL = "sequential"
    BY_AD_ACCOUNT = "by-ad-account"
    BY_CAMPAIGN = "by-campaign"


class CampaignTotal(BaseModel):
    campaign_id: int
    total_value: float = 0.0


class GenerationSummary(BaseModel):
    n_ad_accounts: int
    n_campaigns: int
    n_ads: int
    n_metrics: int
    n_days: int
    load_mode: LoadMode
    metrics_inserted: int
    elapsed_seconds: float


class AggregationResult(BaseModel):
    strategy: AggregationStrategy
    workers: int
    totals: dict[int, float] = Field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def campaign_count(self) -> int:
        return len(self.totals)

    @property
    def grand_total(self) -> float:
        return sum(self.totals.values())
