"""Alembic environment for the terminal's three schemas."""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text

from terminal_core.db.base import Base
from terminal_core.db.engine import _ensure_psycopg_driver

# Registers AccountRow, PositionRow and SignalRow on Base.metadata
import terminal_core.db.tables  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Creation order matters: signals and positions reference accounts
MANAGED_SCHEMAS = ("terminal_accounts", "terminal_signals", "terminal_positions")
VERSION_SCHEMA = "terminal_accounts"


def get_url() -> str:
    """TERMINAL_DATABASE_URL wins over ``sqlalchemy.url`` in alembic.ini."""
    url = os.environ.get("TERMINAL_DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("No database URL: set TERMINAL_DATABASE_URL or sqlalchemy.url")
    return _ensure_psycopg_driver(url)


def include_object(obj, name, type_, reflected, compare_to):
    """Ignore tables that live outside the terminal schemas."""
    if type_ == "table":
        return obj.schema in MANAGED_SCHEMAS
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_schemas=True,
        include_object=include_object,
        version_table_schema=VERSION_SCHEMA,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    _configure(
        url=get_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # The version table lives in a managed schema, so it must exist first
        connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {VERSION_SCHEMA}"))
        connection.commit()

        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
