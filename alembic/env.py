"""Alembic migration runner for the discipline cases schema."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from discipline_cases.infrastructure.db.metadata import metadata

config = context.config

_INI_DEFAULT_URL = "sqlite:///./discipline_cases.db"

# DATABASE_URL only replaces the ini placeholder; URLs set programmatically win.
load_dotenv(Path(__file__).resolve().parents[1] / ".env")
_env_url = os.getenv("DATABASE_URL")
if _env_url and config.get_main_option("sqlalchemy.url") == _INI_DEFAULT_URL:
    config.set_main_option("sqlalchemy.url", _env_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=metadata)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_async() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""

    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Migrate through asyncpg/aiosqlite or a plain sync driver, per the URL."""

    url = make_url(config.get_main_option("sqlalchemy.url") or _INI_DEFAULT_URL)
    if url.get_dialect().is_async:
        asyncio.run(_migrate_async())
        return

    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _migrate(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
