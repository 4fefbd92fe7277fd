"""
Alembic Migration Environment
===============================

Runs MediCamp migrations through the async engine. The database URL comes
from medicamp.config.settings, never from alembic.ini.

Only online migrations are supported; `alembic upgrade --sql` is refused.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from medicamp.config import settings
from medicamp.database import Base

# Registers users, camps, registrations and feedback with Base.metadata
import medicamp.models  # noqa: F401,E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def configure_and_run(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=Base.metadata,
        # autogenerate also reports column type and server default changes
        compare_type=True,
        compare_server_default=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def migrate() -> None:
    engine = create_async_engine(settings.database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(configure_and_run)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    raise SystemExit("MediCamp migrations run against a live database; drop --sql.")

asyncio.run(migrate())
