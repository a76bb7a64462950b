"""
Store Service — query interface over the ad account / campaign / ad / metric tables.

Every operation runs in its own AsyncSession, so one store can be shared by
concurrent workers: each call checks out its own pooled connection.
Database errors are re-raised as StoreError / ReferentialIntegrityError.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence
from sqlalchemy import select, delete, insert, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from metrics_aggregator.database import session_factory
from metrics_aggregator.exceptions import StoreError, ReferentialIntegrityError
from metrics_aggregator.models import AdAccount, Campaign, Ad, Metric, METRIC_COPY_COLUMNS
from metrics_aggregator.schemas import CampaignTotal, MetricRow

logger = logging.getLogger(__name__)


class MetricsStore:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = session_factory(engine)

    @property
    def supports_copy(self) -> bool:
        """True when the engine talks to PostgreSQL through asyncpg (COPY available)."""
        dialect = self.engine.dialect
        return dialect.name == "postgresql" and dialect.driver == "asyncpg"

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session with commit on success, rollback and error translation on failure."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ReferentialIntegrityError(operation, str(e.orig)) from e
            except (SQLAlchemyError, OSError) as e:
                await session.rollback()
                raise StoreError(operation, str(e)) from e

    # ── Clearing (child-to-parent order is the caller's job) ──────────

    async def _clear(self, model, operation: str) -> int:
        async with self._session(operation) as session:
            result = await session.execute(delete(model))
        deleted = result.rowcount or 0
        logger.debug(f"Cleared {model.__tablename__}: {deleted} rows")
        return deleted

    async def clear_metrics(self) -> int:
        return await self._clear(Metric, "clear_metrics")

    async def clear_ads(self) -> int:
        return await self._clear(Ad, "clear_ads")

    async def clear_campaigns(self) -> int:
        return await self._clear(Campaign, "clear_campaigns")

    async def clear_ad_accounts(self) -> int:
        return await self._clear(AdAccount, "clear_ad_accounts")

    # ── Single-row inserts ────────────────────────────────────────────

    async def create_ad_account(self, id: int, name: str) -> None:
        async with self._session("create_ad_account") as session:
            session.add(AdAccount(id=id, name=name))

    async def create_campaign(self, id: int, ad_account_id: int, name: str) -> None:
        async with self._session("create_campaign") as session:
            session.add(Campaign(id=id, ad_account_id=ad_account_id, name=name))

    async def create_ad(self, id: int, campaign_id: int, name: str) -> None:
        async with self._session("create_ad") as session:
            session.add(Ad(id=id, campaign_id=campaign_id, name=name))

    async def create_metric(self, ad_id: int, timestamp: int, value: float, name: str) -> None:
        async with self._session("create_metric") as session:
            session.add(Metric(ad_id=ad_id, timestamp=timestamp, value=value, name=name))

    # ── Bulk insert ───────────────────────────────────────────────────

    async def bulk_insert_metrics(self, rows: Sequence[MetricRow]) -> int:
        """
        Insert a batch of metric rows without a round trip per row.

        PostgreSQL/asyncpg: binary COPY via copy_records_to_table.
        Other dialects: a single executemany INSERT, which SQLAlchemy batches
        into multi-row statements.

        Returns the number of rows inserted.
        """
        if not rows:
            return 0
        if self.supports_copy:
            return await self._copy_metrics(rows)

        async with self._session("bulk_insert_metrics") as session:
            await session.execute(insert(Metric), [row._asdict() for row in rows])
        return len(rows)

    async def _copy_metrics(self, rows: Sequence[MetricRow]) -> int:
        import asyncpg

        try:
            async with self.engine.connect() as conn:
                raw = await conn.get_raw_connection()
                status = await raw.driver_connection.copy_records_to_table(
                    Metric.__tablename__,
                    records=rows,
                    columns=METRIC_COPY_COLUMNS,
                )
        except asyncpg.exceptions.IntegrityConstraintViolationError as e:
            raise ReferentialIntegrityError("bulk_insert_metrics", str(e)) from e
        except (asyncpg.PostgresError, SQLAlchemyError, OSError) as e:
            raise StoreError("bulk_insert_metrics", str(e)) from e

        # status is the server's command tag, e.g. "COPY 365000"
        try:
            return int(status.split()[-1])
        except (AttributeError, ValueError, IndexError):
            return len(rows)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_ad_accounts(self) -> list[AdAccount]:
        async with self._session("get_ad_accounts") as session:
            result = await session.execute(select(AdAccount).order_by(AdAccount.id))
            return list(result.scalars().all())

    async def get_campaigns_for_ad_account(self, ad_account_id: int) -> list[Campaign]:
        async with self._session("get_campaigns_for_ad_account") as session:
            result = await session.execute(
                select(Campaign)
                .where(Campaign.ad_account_id == ad_account_id)
                .order_by(Campaign.id)
            )
            return list(result.scalars().all())

    async def aggregate_metrics_for_campaign(self, campaign_id: int) -> CampaignTotal:
        """
        Sum metric values over every ad of the campaign.
        A campaign without ads or metrics totals 0.0.
        """
        async with self._session("aggregate_metrics_for_campaign") as session:
            result = await session.execute(
                select(func.coalesce(func.sum(Metric.value), 0.0))
                .select_from(Metric)
                .join(Ad, Metric.ad_id == Ad.id)
                .where(Ad.campaign_id == campaign_id)
            )
            total = result.scalar_one()
        return CampaignTotal(campaign_id=campaign_id, total_value=float(total or 0.0))

    async def count_metrics(self) -> int:
        async with self._session("count_metrics") as session:
            result = await session.execute(select(func.count()).select_from(Metric))
            return result.scalar_one()

    async def count_metrics_for_ad(self, ad_id: int) -> int:
        async with self._session("count_metrics_for_ad") as session:
            result = await session.execute(
                select(func.count()).select_from(Metric).where(Metric.ad_id == ad_id)
            )
            return result.scalar_one()
