"""
Metrics Aggregator — Database Models
Four-level advertising hierarchy: ad accounts → campaigns → ads → daily metrics.
IDs of accounts, campaigns and ads are assigned by the generator (dense 0..N-1).
"""

from sqlalchemy import String, Float, Integer, BigInteger, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from metrics_aggregator.database import Base


# ══════════════════════════════════════════════════════════════════════
#  AD ACCOUNTS
# ══════════════════════════════════════════════════════════════════════

class AdAccount(Base):
    """Root of the hierarchy; owns campaigns."""
    __tablename__ = "ad_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    campaigns: Mapped[list["Campaign"]] = relationship("Campaign", back_populates="ad_account")

    def __repr__(self) -> str:
        return f"<AdAccount id={self.id} name={self.name!r}>"


# ══════════════════════════════════════════════════════════════════════
#  CAMPAIGNS
# ══════════════════════════════════════════════════════════════════════

class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    ad_account_id: Mapped[int] = mapped_column(Integer, ForeignKey("ad_accounts.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    ad_account: Mapped["AdAccount"] = relationship("AdAccount", back_populates="campaigns")
    ads: Mapped[list["Ad"]] = relationship("Ad", back_populates="campaign")

    __table_args__ = (
        Index("ix_campaigns_ad_account_id", "ad_account_id"),
    )

    def __repr__(self) -> str:
        return f"<Campaign id={self.id} ad_account_id={self.ad_account_id}>"


# ══════════════════════════════════════════════════════════════════════
#  ADS
# ══════════════════════════════════════════════════════════════════════

class Ad(Base):
    __tablename__ = "ads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    campaign_id: Mapped[int] = mapped_column(Integer, ForeignKey("campaigns.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="ads")

    __table_args__ = (
        Index("ix_ads_campaign_id", "campaign_id"),
    )


# ══════════════════════════════════════════════════════════════════════
#  METRICS — one row per ad per simulated day
# ══════════════════════════════════════════════════════════════════════

class Metric(Base):
    """Time-series measurement. Logical identity is (ad_id, timestamp); id is storage-only."""
    __tablename__ = "metrics"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    ad_id: Mapped[int] = mapped_column(Integer, ForeignKey("ads.id"), nullable=False)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)  # epoch seconds
    value: Mapped[float] = mapped_column(Float, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_metrics_ad_id", "ad_id"),
    )


# Column order used by COPY-based bulk loading
METRIC_COPY_COLUMNS = ["name", "ad_id", "timestamp", "value"]
