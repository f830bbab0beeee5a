"""
Runtime config loader for journal storage: Postgres pool sizing, statement timeout
and the decrypted DEK cache.

Related: apps/api/wiring/modules/journal.py,
  tradebook.contexts.journal.adapters.outbound.persistence.postgres.unit_of_work,
  tradebook.contexts.encryption.adapters.outbound.cache.expiring_dek_cache,
  configs/prod/journal.yaml
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

_ENV_NAME_KEY = "TRADEBOOK_ENV"
_CONFIG_PATH_KEY = "TRADEBOOK_JOURNAL_CONFIG"
_ALLOWED_ENVS = ("dev", "prod", "test")

_POOL_MAX_SIZE_ENV_KEY = "TRADEBOOK_PG_POOL_MAX_SIZE"
_POOL_MIN_SIZE_ENV_KEY = "TRADEBOOK_PG_POOL_MIN_SIZE"
_POOL_MAX_LIFETIME_ENV_KEY = "TRADEBOOK_PG_POOL_MAX_LIFETIME_S"
_POOL_MAX_IDLE_ENV_KEY = "TRADEBOOK_PG_POOL_MAX_IDLE_S"
_POOL_TIMEOUT_ENV_KEY = "TRADEBOOK_PG_POOL_TIMEOUT_S"
_STATEMENT_TIMEOUT_ENV_KEY = "TRADEBOOK_PG_STATEMENT_TIMEOUT_MS"
_DEK_CACHE_MAX_ENTRIES_ENV_KEY = "TRADEBOOK_DEK_CACHE_MAX_ENTRIES"
_DEK_CACHE_TTL_ENV_KEY = "TRADEBOOK_DEK_CACHE_TTL_S"

_DEFAULT_POOL_MAX_SIZE = 2
_DEFAULT_POOL_MIN_SIZE = 1
_DEFAULT_POOL_MAX_LIFETIME_S = 1800
_DEFAULT_POOL_MAX_IDLE_S = 600
_DEFAULT_POOL_TIMEOUT_S = 10
_DEFAULT_STATEMENT_TIMEOUT_MS = 15_000
_DEFAULT_DEK_CACHE_MAX_ENTRIES = 1000
_DEFAULT_DEK_CACHE_TTL_S = 300


@dataclass(frozen=True, slots=True)
class JournalStorageConfig:
    """
    Immutable runtime config for journal Postgres access and DEK caching.

    Related: apps/api/wiring/modules/journal.py
    """

    pool_max_size: int = _DEFAULT_POOL_MAX_SIZE
    pool_min_size: int = _DEFAULT_POOL_MIN_SIZE
    pool_max_lifetime_s: int = _DEFAULT_POOL_MAX_LIFETIME_S
    pool_max_idle_s: int = _DEFAULT_POOL_MAX_IDLE_S
    pool_timeout_s: int = _DEFAULT_POOL_TIMEOUT_S
    statement_timeout_ms: int = _DEFAULT_STATEMENT_TIMEOUT_MS
    dek_cache_max_entries: int = _DEFAULT_DEK_CACHE_MAX_ENTRIES
    dek_cache_ttl_s: int = _DEFAULT_DEK_CACHE_TTL_S

    def __post_init__(self) -> None:
        """
        Validate pool and cache invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Pool keeps at least one idle connection and never exceeds `pool_max_size`.
        Raises:
            ValueError: If any value violates required bounds.
        Side Effects:
            None.
        """
        for field_name in (
            "pool_max_size",
            "pool_max_lifetime_s",
            "pool_max_idle_s",
            "pool_timeout_s",
            "statement_timeout_ms",
            "dek_cache_max_entries",
            "dek_cache_ttl_s",
        ):
            value = getattr(self, field_name)
            if value <= 0:
                raise ValueError(f"{field_name} must be > 0, got {value}")
        if self.pool_min_size < 0:
            raise ValueError(f"pool_min_size must be >= 0, got {self.pool_min_size}")
        if self.pool_min_size > self.pool_max_size:
            raise ValueError(
                "pool_min_size must be <= pool_max_size, "
                f"got {self.pool_min_size} > {self.pool_max_size}"
            )


def load_journal_storage_config(*, environ: Mapping[str, str]) -> JournalStorageConfig:
    """
    Load journal storage config from optional YAML and env overrides.

    Args:
        environ: Environment mapping used to resolve env and override values.
    Returns:
        JournalStorageConfig: Validated runtime settings.
    Assumptions:
        Missing YAML file means defaults; explicit override path must exist.
    Raises:
        FileNotFoundError: If `TRADEBOOK_JOURNAL_CONFIG` points to a missing file.
        ValueError: If YAML or environment values are invalid.
    Side Effects:
        Reads at most one YAML file from disk.
    """
    override = environ.get(_CONFIG_PATH_KEY, "").strip()
    if override:
        path = Path(override)
        if not path.exists():
            raise FileNotFoundError(f"journal storage config not found: {path}")
    else:
        path = Path("configs") / _resolve_env_name(environ=environ) / "journal.yaml"

    payload = _load_journal_payload(path=path)
    pool_payload = _section(payload=payload, key="pool")
    cache_payload = _section(payload=payload, key="dek_cache")

    return JournalStorageConfig(
        pool_max_size=_resolve_int_setting(
            environ=environ,
            env_key=_POOL_MAX_SIZE_ENV_KEY,
            payload=pool_payload,
            payload_key="max_size",
            default=_DEFAULT_POOL_MAX_SIZE,
        ),
        pool_min_size=_resolve_int_setting(
            environ=environ,
            env_key=_POOL_MIN_SIZE_ENV_KEY,
            payload=pool_payload,
            payload_key="min_size",
            default=_DEFAULT_POOL_MIN_SIZE,
            allow_zero=True,
        ),
        pool_max_lifetime_s=_resolve_int_setting(
            environ=environ,
            env_key=_POOL_MAX_LIFETIME_ENV_KEY,
            payload=pool_payload,
            payload_key="max_lifetime_s",
            default=_DEFAULT_POOL_MAX_LIFETIME_S,
        ),
        pool_max_idle_s=_resolve_int_setting(
            environ=environ,
            env_key=_POOL_MAX_IDLE_ENV_KEY,
            payload=pool_payload,
            payload_key="max_idle_s",
            default=_DEFAULT_POOL_MAX_IDLE_S,
        ),
        pool_timeout_s=_resolve_int_setting(
            environ=environ,
            env_key=_POOL_TIMEOUT_ENV_KEY,
            payload=pool_payload,
            payload_key="timeout_s",
            default=_DEFAULT_POOL_TIMEOUT_S,
        ),
        statement_timeout_ms=_resolve_int_setting(
            environ=environ,
            env_key=_STATEMENT_TIMEOUT_ENV_KEY,
            payload=pool_payload,
            payload_key="statement_timeout_ms",
            default=_DEFAULT_STATEMENT_TIMEOUT_MS,
        ),
        dek_cache_max_entries=_resolve_int_setting(
            environ=environ,
            env_key=_DEK_CACHE_MAX_ENTRIES_ENV_KEY,
            payload=cache_payload,
            payload_key="max_entries",
            default=_DEFAULT_DEK_CACHE_MAX_ENTRIES,
        ),
        dek_cache_ttl_s=_resolve_int_setting(
            environ=environ,
            env_key=_DEK_CACHE_TTL_ENV_KEY,
            payload=cache_payload,
            payload_key="ttl_s",
            default=_DEFAULT_DEK_CACHE_TTL_S,
        ),
    )


def _resolve_env_name(*, environ: Mapping[str, str]) -> str:
    """
    Resolve normalized runtime environment name.

    Args:
        environ: Environment mapping.
    Returns:
        str: One of `dev`, `prod`, `test`.
    Assumptions:
        Missing env falls back to `dev`.
    Raises:
        ValueError: If value is outside allowed set.
    Side Effects:
        None.
    """
    raw_env = environ.get(_ENV_NAME_KEY, "dev").strip().lower()
    if raw_env not in _ALLOWED_ENVS:
        raise ValueError(f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env!r}")
    return raw_env


def _load_journal_payload(*, path: Path) -> Mapping[str, Any]:
    """
    Load optional top-level `journal` mapping from YAML.

    Args:
        path: Journal config path.
    Returns:
        Mapping[str, Any]: `journal` mapping, or empty mapping when file/section is absent.
    Assumptions:
        Unknown keys are ignored by this loader.
    Raises:
        ValueError: If YAML structure is invalid.
    Side Effects:
        Reads one UTF-8 file from disk when it exists.
    """
    if not path.exists():
        return {}
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("journal config must be a mapping at top-level")
    return _section(payload=raw, key="journal")


def _section(*, payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = payload.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"{key} section must be a mapping")
    return section


def _resolve_int_setting(
    *,
    environ: Mapping[str, str],
    env_key: str,
    payload: Mapping[str, Any],
    payload_key: str,
    default: int,
    allow_zero: bool = False,
) -> int:
    """
    Resolve integer setting from env -> payload -> default precedence.

    Args:
        environ: Environment mapping.
        env_key: Env variable name.
        payload: Parsed YAML subsection.
        payload_key: YAML key name.
        default: Fallback default value.
        allow_zero: Whether zero is an accepted value.
    Returns:
        int: Resolved integer value.
    Assumptions:
        String env values use base-10 integer format.
    Raises:
        ValueError: If provided value cannot be parsed or is out of range.
    Side Effects:
        None.
    """
    raw = environ.get(env_key, "").strip()
    if raw:
        try:
            parsed = int(raw, 10)
        except ValueError as error:
            raise ValueError(f"{env_key} must be int, got {raw!r}") from error
        _ensure_bound(value=parsed, name=env_key, allow_zero=allow_zero)
        return parsed

    payload_value = payload.get(payload_key)
    if payload_value is None:
        return default
    if isinstance(payload_value, bool) or not isinstance(payload_value, int):
        raise ValueError(
            f"expected int for journal.{payload_key}, got {type(payload_value).__name__}"
        )
    _ensure_bound(value=payload_value, name=f"journal.{payload_key}", allow_zero=allow_zero)
    return payload_value


def _ensure_bound(*, value: int, name: str, allow_zero: bool) -> None:
    if allow_zero and value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    if not allow_zero and value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")


__all__ = [
    "JournalStorageConfig",
    "load_journal_storage_config",
]
