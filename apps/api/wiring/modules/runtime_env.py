"""
Environment parsing helpers shared by API wiring modules.
"""

from __future__ import annotations

from typing import Mapping

ENV_NAME_KEY = "TRADEBOOK_ENV"
FAIL_FAST_KEY = "TRADEBOOK_FAIL_FAST"
ALLOWED_ENVS = ("dev", "prod", "test")


def resolve_env_name(*, environ: Mapping[str, str]) -> str:
    """
    Resolve normalized runtime env name.

    Args:
        environ: Runtime environment mapping.
    Returns:
        str: One of `dev`, `prod`, or `test`.
    Assumptions:
        Missing value defaults to `dev`.
    Raises:
        ValueError: If value is outside allowed list.
    Side Effects:
        None.
    """
    raw_env_name = environ.get(ENV_NAME_KEY, "dev").strip().lower()
    if raw_env_name not in ALLOWED_ENVS:
        raise ValueError(f"{ENV_NAME_KEY} must be one of {ALLOWED_ENVS}, got {raw_env_name!r}")
    return raw_env_name


def resolve_fail_fast(*, environ: Mapping[str, str], env_name: str) -> bool:
    """
    Resolve fail-fast policy for startup validation.

    Args:
        environ: Runtime environment mapping.
        env_name: Normalized environment name.
    Returns:
        bool: Effective fail-fast flag.
    Assumptions:
        Default is enabled for `prod` and disabled for `dev`/`test`.
    Raises:
        ValueError: If override value is not parseable as boolean.
    Side Effects:
        None.
    """
    raw_override = environ.get(FAIL_FAST_KEY, "").strip()
    if not raw_override:
        return env_name == "prod"
    return parse_bool(raw_value=raw_override, key=FAIL_FAST_KEY)


def parse_bool(*, raw_value: str, key: str) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(
        f"{key} must be a boolean literal (1/0/true/false/yes/no/on/off), got {raw_value!r}"
    )


def resolve_choice(
    *,
    environ: Mapping[str, str],
    key: str,
    allowed: tuple[str, ...],
    default: str,
) -> str:
    raw_value = environ.get(key, "").strip().lower() or default
    if raw_value not in allowed:
        raise ValueError(f"{key} must be one of {allowed}, got {raw_value!r}")
    return raw_value


__all__ = [
    "ALLOWED_ENVS",
    "ENV_NAME_KEY",
    "FAIL_FAST_KEY",
    "parse_bool",
    "resolve_choice",
    "resolve_env_name",
    "resolve_fail_fast",
]
