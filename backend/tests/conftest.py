"""
Shared fixtures: a throwaway SQLite database (aiosqlite, foreign keys on) per test.
"""

import pytest
from metrics_aggregator.config import Settings
from metrics_aggregator.database import build_engine, init_db
from metrics_aggregator.services.store_service import MetricsStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        environment="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}",
        aggregation_workers=4,
        bulk_insert_workers=2,
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.database_url, settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def store(engine):
    return MetricsStore(engine)
