"""
Alembic environment for the metrics schema.
The target URL is sqlalchemy.url when the caller sets one, otherwise DATABASE_URL from settings.
Online migrations reuse the store's engine builder, so SQLite runs get the same foreign key pragma.
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context

os.environ.setdefault("ENVIRONMENT", "development")
from metrics_aggregator.config import get_settings
from metrics_aggregator.database import Base, build_engine
import metrics_aggregator.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

settings = get_settings()
database_url = config.get_main_option("sqlalchemy.url") or settings.database_url
target_metadata = Base.metadata


def _migrate(**configure_args) -> None:
    context.configure(target_metadata=target_metadata, **configure_args)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = build_engine(database_url, settings)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(lambda sync_conn: _migrate(connection=sync_conn))
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _migrate(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_migrate_online())
