"""
Tests for the synthetic data generator.
"""

import pytest
from unittest.mock import AsyncMock
from sqlalchemy import select, func
from metrics_aggregator.database import session_factory
from metrics_aggregator.exceptions import GenerationPreconditionError, ReferentialIntegrityError
from metrics_aggregator.models import AdAccount, Campaign, Ad, Metric
from metrics_aggregator.schemas import LoadMode, MetricRow
from metrics_aggregator.services.generator_service import GeneratorService, chunk_rows, validate_scale


@pytest.fixture
def generator(store, settings):
    return GeneratorService(store, settings)


@pytest.mark.anyio
async def test_concrete_scenario_row_count(generator, store):
    summary = await generator.generate(n_ad_accounts=2, n_campaigns=2, n_ads=2, n_metrics=2, n_days=3)

    assert summary.metrics_inserted == 6
    assert summary.load_mode == LoadMode.BULK
    assert summary.elapsed_seconds >= 0
    assert await store.count_metrics() == 6


@pytest.mark.anyio
async def test_referential_integrity_follows_modulo_rule(generator, engine):
    await generator.generate(n_ad_accounts=3, n_campaigns=7, n_ads=11, n_metrics=13, n_days=2)

    async with session_factory(engine)() as session:
        accounts = (await session.execute(select(AdAccount))).scalars().all()
        campaigns = (await session.execute(select(Campaign))).scalars().all()
        ads = (await session.execute(select(Ad))).scalars().all()
        ad_ids_with_metrics = (await session.execute(select(Metric.ad_id).distinct())).scalars().all()

    account_ids = {a.id for a in accounts}
    campaign_ids = {c.id for c in campaigns}
    ad_ids = {a.id for a in ads}

    assert account_ids == set(range(3))
    assert campaign_ids == set(range(7))
    assert ad_ids == set(range(11))
    for campaign in campaigns:
        assert campaign.ad_account_id in account_ids
        assert campaign.ad_account_id == campaign.id % 3
        assert campaign.name == f"Campaign {campaign.id}"
    for ad in ads:
        assert ad.campaign_id in campaign_ids
        assert ad.campaign_id == ad.id % 7
    assert set(ad_ids_with_metrics) <= ad_ids


@pytest.mark.anyio
async def test_bulk_load_completeness(generator, store):
    """M×D rows, and each ad's sum is 10 × its row count."""
    n_ads, n_metrics, n_days = 4, 10, 5
    await generator.generate(n_ad_accounts=2, n_campaigns=3, n_ads=n_ads, n_metrics=n_metrics, n_days=n_days)

    assert await store.count_metrics() == n_metrics * n_days
    for ad_id in range(n_ads):
        series = sum(1 for i in range(n_metrics) if i % n_ads == ad_id)
        assert await store.count_metrics_for_ad(ad_id) == series * n_days


@pytest.mark.anyio
async def test_per_ad_sum_is_ten_per_row(generator, engine, store):
    await generator.generate(n_ad_accounts=1, n_campaigns=2, n_ads=3, n_metrics=7, n_days=4)

    async with session_factory(engine)() as session:
        rows = (await session.execute(
            select(Metric.ad_id, func.count(), func.sum(Metric.value)).group_by(Metric.ad_id)
        )).all()
    for ad_id, count, total in rows:
        assert total == 10 * count


@pytest.mark.anyio
async def test_timestamps_start_at_epoch_and_step_one_day(generator, engine):
    await generator.generate(n_ad_accounts=1, n_campaigns=1, n_ads=1, n_metrics=1, n_days=3)

    async with session_factory(engine)() as session:
        timestamps = (await session.execute(select(Metric.timestamp).order_by(Metric.timestamp))).scalars().all()
    assert timestamps == [1609459200, 1609459200 + 86400, 1609459200 + 2 * 86400]


@pytest.mark.anyio
async def test_regenerating_replaces_previous_data(generator, store):
    await generator.generate(n_ad_accounts=2, n_campaigns=2, n_ads=2, n_metrics=4, n_days=5)
    await generator.generate(n_ad_accounts=1, n_campaigns=1, n_ads=1, n_metrics=1, n_days=1)

    assert await store.count_metrics() == 1
    assert [a.id for a in await store.get_ad_accounts()] == [0]


@pytest.mark.anyio
async def test_reset_twice_on_empty_store(generator, store):
    await generator.reset()
    await generator.reset()
    assert await store.count_metrics() == 0


@pytest.mark.anyio
@pytest.mark.parametrize("load_mode", [LoadMode.ROW, LoadMode.BULK, LoadMode.PARALLEL])
async def test_load_modes_insert_the_same_rows(generator, store, load_mode):
    summary = await generator.generate(
        n_ad_accounts=2, n_campaigns=3, n_ads=5, n_metrics=6, n_days=7, load_mode=load_mode,
    )
    assert summary.load_mode == load_mode
    assert summary.metrics_inserted == 42
    assert await store.count_metrics() == 42


@pytest.mark.anyio
async def test_zero_metrics_or_days_is_allowed(generator, store):
    summary = await generator.generate(n_ad_accounts=1, n_campaigns=1, n_ads=1, n_metrics=0, n_days=10)
    assert summary.metrics_inserted == 0
    assert len(await store.get_ad_accounts()) == 1


@pytest.mark.anyio
async def test_custom_value_generator(store, settings):
    generator = GeneratorService(store, settings, value_generator=lambda i, j: i * 100 + j)
    rows = generator.build_metric_rows(n_metrics=2, n_ads=1, n_days=2)
    assert [r.value for r in rows] == [0.0, 1.0, 100.0, 101.0]
    assert rows[0] == MetricRow("Metric 0", 0, 1609459200, 0.0)


@pytest.mark.parametrize("kwargs", [
    dict(n_ad_accounts=0, n_campaigns=1, n_ads=1, n_metrics=1, n_days=1),
    dict(n_ad_accounts=1, n_campaigns=0, n_ads=1, n_metrics=1, n_days=1),
    dict(n_ad_accounts=1, n_campaigns=1, n_ads=0, n_metrics=1, n_days=1),
    dict(n_ad_accounts=1, n_campaigns=1, n_ads=1, n_metrics=-1, n_days=1),
    dict(n_ad_accounts=1, n_campaigns=1, n_ads=1, n_metrics=1, n_days=-3),
])
def test_validate_scale_rejects_bad_counts(kwargs):
    with pytest.raises(GenerationPreconditionError):
        validate_scale(**kwargs)


@pytest.mark.anyio
async def test_precondition_failure_leaves_store_untouched(settings):
    store = AsyncMock()
    generator = GeneratorService(store, settings)

    with pytest.raises(ValueError, match="n_campaigns must be greater than 0"):
        await generator.generate(n_ad_accounts=1, n_campaigns=0, n_ads=1, n_metrics=1, n_days=1)
    store.clear_metrics.assert_not_awaited()
    store.create_ad_account.assert_not_awaited()


@pytest.mark.anyio
async def test_store_error_aborts_generation(settings):
    store = AsyncMock()
    store.create_campaign.side_effect = ReferentialIntegrityError("create_campaign", "missing ad account")
    generator = GeneratorService(store, settings)

    with pytest.raises(ReferentialIntegrityError):
        await generator.generate(n_ad_accounts=2, n_campaigns=2, n_ads=2, n_metrics=2, n_days=3)
    assert store.create_campaign.await_count == 1
    store.create_ad.assert_not_awaited()
    store.bulk_insert_metrics.assert_not_awaited()


@pytest.mark.anyio
async def test_reset_clears_children_first(settings):
    calls = []
    store = AsyncMock()
    for name in ("clear_metrics", "clear_ads", "clear_campaigns", "clear_ad_accounts"):
        getattr(store, name).side_effect = lambda name=name: calls.append(name)

    await GeneratorService(store, settings).reset()
    assert calls == ["clear_metrics", "clear_ads", "clear_campaigns", "clear_ad_accounts"]


def test_chunk_rows_splits_evenly():
    rows = [MetricRow("m", 0, t, 1.0) for t in range(10)]
    chunks = chunk_rows(rows, 3)
    assert [len(c) for c in chunks] == [4, 4, 2]
    assert [r for c in chunks for r in c] == rows
    assert chunk_rows([], 3) == []
    assert len(chunk_rows(rows[:2], 8)) == 2
