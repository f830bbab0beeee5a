"""Alembic environment for journal schema migrations (plain SQL revisions, no ORM metadata)."""

from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection

from alembic import context

_POSTGRES_DSN_ENV = "TRADEBOOK_PG_DSN"
_VERSION_TABLE = "journal_alembic_version"

config = context.config


def _resolve_url() -> str:
    """
    Resolve SQLAlchemy URL for standalone `alembic` invocations.

    Args:
        None.
    Returns:
        str: URL with the `postgresql+psycopg` driver.
    Assumptions:
        `sqlalchemy.url` wins over `TRADEBOOK_PG_DSN`; conninfo DSNs go through
        `apps.migrations.main` instead.
    Raises:
        RuntimeError: If neither source provides a URL.
    Side Effects:
        Reads process environment.

    Related:
      - apps/migrations/main.py
      - alembic.ini
    """
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if not url:
        url = os.environ.get(_POSTGRES_DSN_ENV, "").strip()
    if not url:
        raise RuntimeError(f"sqlalchemy.url or {_POSTGRES_DSN_ENV} must be set for migrations")
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def _run(**configure_kwargs: Any) -> None:
    context.configure(
        target_metadata=None,
        version_table=_VERSION_TABLE,
        transaction_per_migration=True,
        **configure_kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """
    Emit journal schema SQL without a database connection (`alembic upgrade --sql`).

    Related:
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """
    _run(url=_resolve_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})


def run_migrations_online() -> None:
    """
    Apply migrations on the connection injected by the runner or on a fresh one.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        An injected connection already holds the advisory lock; its owner commits.
    Raises:
        Exception: Alembic configuration/runtime errors.
    Side Effects:
        Opens a DB connection when none is injected and applies schema changes.
    """
    injected_connection = config.attributes.get("connection")
    if isinstance(injected_connection, Connection):
        _run(connection=injected_connection)
        return

    if config.config_file_name is not None:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    engine = create_engine(_resolve_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _run(connection=connection)
            connection.commit()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
