from __future__ import annotations

import argparse
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping

from psycopg.conninfo import conninfo_to_dict
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection
from sqlalchemy.engine.url import make_url

from alembic import command
from alembic.config import Config

_POSTGRES_DSN_ENV = "TRADEBOOK_PG_DSN"
_APP_ROLE_ENV = "TRADEBOOK_PG_APP_ROLE"
_DEFAULT_LOCK_KEY = 72041936551
_POSTGRES_URL_PREFIXES: tuple[str, ...] = (
    "postgresql+psycopg://",
    "postgresql://",
    "postgres://",
)
_JOURNAL_TABLES: tuple[str, ...] = (
    "users",
    "tradebooks",
    "tradebook_members",
    "trades",
    "exit_legs",
)
_JOURNAL_FUNCTIONS: tuple[str, ...] = (
    "journal_current_user_id()",
    "journal_member_role(UUID)",
)

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """
    Build CLI parser for fail-fast Alembic migration runner.

    Args:
        None.
    Returns:
        argparse.ArgumentParser: Configured command parser.
    Assumptions:
        Entry point is called from repository root or any nested path.
    Raises:
        None.
    Side Effects:
        None.

    Related:
      - alembic.ini
      - alembic/env.py
      - configs/prod/journal.yaml
    """
    parser = argparse.ArgumentParser(prog="tradebook-migrations")
    parser.add_argument(
        "--dsn",
        default="",
        help=f"Postgres DSN. Falls back to ${_POSTGRES_DSN_ENV} when omitted.",
    )
    parser.add_argument(
        "--lock-key",
        type=int,
        default=_DEFAULT_LOCK_KEY,
        help="Advisory lock key used with pg_advisory_lock during migration upgrade.",
    )
    parser.add_argument(
        "--app-role",
        default="",
        help=(
            "Non-owner role used by the API. Receives DML grants on journal tables. "
            f"Falls back to ${_APP_ROLE_ENV} when omitted."
        ),
    )
    return parser


def _resolve_dsn(*, arg_dsn: str, environ: Mapping[str, str]) -> str:
    """
    Resolve Postgres DSN from CLI argument or environment variable.

    Args:
        arg_dsn: CLI `--dsn` value.
        environ: Environment mapping.
    Returns:
        str: Non-empty normalized DSN string.
    Assumptions:
        Environment fallback key is `TRADEBOOK_PG_DSN`.
    Raises:
        ValueError: If DSN is missing.
    Side Effects:
        None.
    """
    dsn = arg_dsn.strip() if arg_dsn.strip() else environ.get(_POSTGRES_DSN_ENV, "").strip()
    if not dsn:
        raise ValueError("Migration DSN is required via --dsn or TRADEBOOK_PG_DSN")
    return dsn


def _resolve_app_role(*, arg_role: str, environ: Mapping[str, str]) -> str | None:
    """
    Resolve optional API role name from CLI argument or environment variable.

    Args:
        arg_role: CLI `--app-role` value.
        environ: Environment mapping.
    Returns:
        str | None: Role name, or None when grants should be skipped.
    Assumptions:
        Role names are plain identifiers; quoting happens at grant time.
    Raises:
        None.
    Side Effects:
        None.
    """
    role = arg_role.strip() if arg_role.strip() else environ.get(_APP_ROLE_ENV, "").strip()
    return role or None


def _build_alembic_config(*, repo_root: Path) -> Config:
    """
    Build Alembic configuration for `alembic upgrade head` execution.

    Args:
        repo_root: Repository root path.
    Returns:
        Config: Ready-to-run Alembic configuration.
    Assumptions:
        `alembic.ini` and `alembic/` live in repository root.
    Raises:
        ValueError: If alembic.ini is missing.
    Side Effects:
        None.

    Related:
      - alembic.ini
      - alembic/env.py
      - apps/migrations/main.py
    """
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        raise ValueError(f"Missing Alembic config file: {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(repo_root / "alembic"))
    return config


def _upgrade_head_under_lock(
    *,
    config: Config,
    sqlalchemy_url: URL,
    lock_key: int,
    app_role: str | None = None,
) -> None:
    """
    Run `alembic upgrade head` and optional app-role grants while holding advisory lock.

    Args:
        config: Prepared Alembic config.
        sqlalchemy_url: SQLAlchemy URL built from URL DSN or libpq conninfo.
        lock_key: Advisory lock key.
        app_role: Optional non-owner role that receives journal DML grants.
    Returns:
        None.
    Assumptions:
        Upgrade and grants share the connection that holds the lock and commit together.
    Raises:
        Exception: Any DB or Alembic failure is propagated for fail-fast startup.
    Side Effects:
        Applies DB schema migrations and role grants.

    Related:
      - alembic/env.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
    """
    engine = create_engine(sqlalchemy_url, pool_pre_ping=True)
    try:
        with engine.connect() as connection, _advisory_lock(
            connection=connection,
            lock_key=lock_key,
        ):
            config.attributes["connection"] = connection
            log.info("migration.upgrade target=head")
            try:
                command.upgrade(config, "head")
                if app_role is not None:
                    _grant_app_role(connection=connection, app_role=app_role)
                connection.commit()
            except Exception:  # noqa: BLE001
                connection.rollback()
                raise
            log.info("migration.upgrade status=success")
    finally:
        engine.dispose()


def _grant_app_role(*, connection: Connection, app_role: str) -> None:
    """
    Grant the API role DML on journal tables and EXECUTE on policy helper functions.

    Args:
        connection: SQLAlchemy connection holding the migration lock.
        app_role: Existing Postgres role name.
    Returns:
        None.
    Assumptions:
        Role is not the table owner, so row-level security applies to it.
    Raises:
        Exception: Underlying DB execution errors (for example unknown role).
    Side Effects:
        Issues GRANT statements.
    """
    quoted_role = connection.dialect.identifier_preparer.quote(app_role)
    log.info("migration.grant role=%s", app_role)
    for table in _JOURNAL_TABLES:
        connection.execute(
            text(f"GRANT SELECT, INSERT, UPDATE, DELETE ON {table} TO {quoted_role}")
        )
    for function in _JOURNAL_FUNCTIONS:
        connection.execute(text(f"GRANT EXECUTE ON FUNCTION {function} TO {quoted_role}"))


@contextmanager
def _advisory_lock(*, connection: Connection, lock_key: int) -> Iterator[None]:
    """
    Hold a session-level `pg_advisory_lock` for the duration of the block.

    Concurrent runners (one per API replica) queue on the same key; unlock is committed
    even when the block raises.
    """
    log.info("migration.lock acquire key=%s", lock_key)
    connection.execute(text("SELECT pg_advisory_lock(:lock_key)"), {"lock_key": lock_key})
    try:
        yield
    finally:
        log.info("migration.lock release key=%s", lock_key)
        connection.execute(text("SELECT pg_advisory_unlock(:lock_key)"), {"lock_key": lock_key})
        connection.commit()


def _to_sqlalchemy_psycopg_url(*, dsn: str) -> URL:
    """
    Build a `postgresql+psycopg` SQLAlchemy URL from a URL DSN or libpq conninfo.

    Args:
        dsn: Raw Postgres DSN.
    Returns:
        URL: SQLAlchemy URL; passwords keep special characters verbatim.
    Assumptions:
        Anything without a Postgres URL prefix is treated as conninfo.
    Raises:
        ValueError: If DSN is empty, uses a foreign driver, or is not parseable.
    Side Effects:
        None.
    """
    normalized = dsn.strip()
    if not normalized:
        raise ValueError("Postgres DSN cannot be empty")
    if normalized.startswith(_POSTGRES_URL_PREFIXES):
        parsed_url = make_url(normalized)
        if parsed_url.drivername not in {"postgresql", "postgres", "postgresql+psycopg"}:
            raise ValueError("Postgres URL DSN must use postgresql:// or postgres:// scheme")
        return parsed_url.set(drivername="postgresql+psycopg")
    return _conninfo_to_url(conninfo_dsn=normalized)


def _conninfo_to_url(*, conninfo_dsn: str) -> URL:
    try:
        fields = {key: str(value).strip() for key, value in conninfo_to_dict(conninfo_dsn).items()}
    except Exception as error:  # noqa: BLE001
        raise ValueError("Postgres DSN must be URL or libpq conninfo format") from error

    raw_port = fields.pop("port", "")
    if raw_port and not raw_port.isdigit():
        raise ValueError("Conninfo port must be numeric when provided")
    host = fields.pop("host", "") or fields.pop("hostaddr", "")
    fields.pop("hostaddr", None)
    return URL.create(
        "postgresql+psycopg",
        username=fields.pop("user", "") or None,
        password=fields.pop("password", "") or None,
        host=host or None,
        port=int(raw_port) if raw_port else None,
        database=fields.pop("dbname", "") or None,
        query={key: value for key, value in sorted(fields.items()) if value},
    )


def main(argv: list[str] | None = None) -> int:
    """
    Run fail-fast migration flow with advisory lock and `alembic upgrade head`.

    Args:
        argv: Optional CLI argument list without program name.
    Returns:
        int: Zero on success, non-zero on failure.
    Assumptions:
        Caller expects startup to fail immediately when migrations fail.
    Raises:
        None.
    Side Effects:
        Reads environment, connects to Postgres, applies migrations, emits status logs.

    Related:
      - alembic/env.py
      - alembic/versions/20261001_0001_journal_schema_rls.py
      - configs/prod/journal.yaml
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        dsn = _resolve_dsn(arg_dsn=args.dsn, environ=os.environ)
        sqlalchemy_url = _to_sqlalchemy_psycopg_url(dsn=dsn)
        repo_root = Path(__file__).resolve().parents[2]
        config = _build_alembic_config(repo_root=repo_root)
        _upgrade_head_under_lock(
            config=config,
            sqlalchemy_url=sqlalchemy_url,
            lock_key=args.lock_key,
            app_role=_resolve_app_role(arg_role=args.app_role, environ=os.environ),
        )
    except Exception as error:  # noqa: BLE001
        log.error("migration.failed error=%s", error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
