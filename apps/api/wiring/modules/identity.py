"""
Composition helpers for the identity API module (bearer auth + internal API key).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from apps.api.wiring.modules.runtime_env import (
    FAIL_FAST_KEY,
    resolve_env_name,
    resolve_fail_fast,
)
from tradebook.contexts.identity.adapters.inbound.api.deps import (
    RequireCurrentUserDependency,
    RequireInternalApiKeyDependency,
)
from tradebook.contexts.identity.adapters.outbound import Hs256JwtCodec, JwtBearerCurrentUser
from tradebook.platform.time import SystemClock

_JWT_SECRET_KEY = "TRADEBOOK_JWT_SECRET"
_INTERNAL_API_SECRET_KEY = "TRADEBOOK_INTERNAL_API_SECRET"
_JWT_LEEWAY_SECONDS_KEY = "TRADEBOOK_JWT_LEEWAY_SECONDS"
_JWT_ISSUER_KEY = "TRADEBOOK_JWT_ISSUER"
_JWT_AUDIENCE_KEY = "TRADEBOOK_JWT_AUDIENCE"

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IdentityRuntimeSettings:
    """
    IdentityRuntimeSettings — runtime policy for identity wiring.

    Related:
      - apps/api/wiring/modules/identity.py
      - apps/api/main/app.py
    """

    env_name: str
    fail_fast: bool
    jwt_secret: str
    internal_api_secret: str
    jwt_leeway_seconds: int
    jwt_issuer: str = ""
    jwt_audience: str = ""

    def __post_init__(self) -> None:
        if not self.jwt_secret:
            raise ValueError("IdentityRuntimeSettings.jwt_secret must be non-empty")
        if not self.internal_api_secret:
            raise ValueError("IdentityRuntimeSettings.internal_api_secret must be non-empty")
        if self.jwt_leeway_seconds < 0:
            raise ValueError("IdentityRuntimeSettings.jwt_leeway_seconds must be >= 0")


@dataclass(frozen=True, slots=True)
class IdentityApiModule:
    """IdentityApiModule — dependencies other API modules use to authenticate callers."""

    current_user_dependency: RequireCurrentUserDependency
    internal_api_key_dependency: RequireInternalApiKeyDependency


def build_identity_api_module(*, environ: Mapping[str, str]) -> IdentityApiModule:
    """
    Build identity dependencies from environment settings.

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityApiModule: Bearer-token and internal API key dependencies.
    Assumptions:
        Fail-fast policy and secrets are resolved by `resolve_identity_runtime_settings`.
    Raises:
        ValueError: If fail-fast settings require missing secrets or invalid values.
    Side Effects:
        None.
    """
    settings = resolve_identity_runtime_settings(environ=environ)
    jwt_codec = Hs256JwtCodec(
        secret_key=settings.jwt_secret,
        clock=SystemClock(),
        leeway_seconds=settings.jwt_leeway_seconds,
        issuer=settings.jwt_issuer or None,
        audience=settings.jwt_audience or None,
    )
    return IdentityApiModule(
        current_user_dependency=RequireCurrentUserDependency(
            current_user=JwtBearerCurrentUser(jwt_codec=jwt_codec),
        ),
        internal_api_key_dependency=RequireInternalApiKeyDependency(
            secret=settings.internal_api_secret,
        ),
    )


def resolve_identity_runtime_settings(*, environ: Mapping[str, str]) -> IdentityRuntimeSettings:
    """
    Resolve identity runtime settings with fail-fast policy and dev defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityRuntimeSettings: Validated normalized settings.
    Assumptions:
        Missing secrets fall back to dev values only when fail-fast is disabled.
    Raises:
        ValueError: If env values are invalid or fail-fast policy requires missing secrets.
    Side Effects:
        Logs a warning naming env keys replaced by dev defaults.
    """
    env_name = resolve_env_name(environ=environ)
    fail_fast = resolve_fail_fast(environ=environ, env_name=env_name)
    jwt_secret = environ.get(_JWT_SECRET_KEY, "").strip()
    internal_api_secret = environ.get(_INTERNAL_API_SECRET_KEY, "").strip()

    if fail_fast:
        if not jwt_secret:
            raise ValueError(f"{_JWT_SECRET_KEY} must be set when {FAIL_FAST_KEY}=true")
        if not internal_api_secret:
            raise ValueError(f"{_INTERNAL_API_SECRET_KEY} must be set when {FAIL_FAST_KEY}=true")

    secrets = ((_JWT_SECRET_KEY, jwt_secret), (_INTERNAL_API_SECRET_KEY, internal_api_secret))
    dev_fallbacks = [key for key, value in secrets if not value]
    if dev_fallbacks:
        log.warning(
            "identity uses dev secrets: env=%s keys=%s",
            env_name,
            ",".join(dev_fallbacks),
        )

    raw_leeway = environ.get(_JWT_LEEWAY_SECONDS_KEY, "").strip() or "0"
    try:
        leeway_seconds = int(raw_leeway)
    except ValueError as error:
        raise ValueError(
            f"{_JWT_LEEWAY_SECONDS_KEY} must be integer, got {raw_leeway!r}"
        ) from error

    return IdentityRuntimeSettings(
        env_name=env_name,
        fail_fast=fail_fast,
        jwt_secret=jwt_secret or "dev-tradebook-jwt-secret",
        internal_api_secret=internal_api_secret or "dev-tradebook-internal-api-secret",
        jwt_leeway_seconds=leeway_seconds,
        jwt_issuer=environ.get(_JWT_ISSUER_KEY, "").strip(),
        jwt_audience=environ.get(_JWT_AUDIENCE_KEY, "").strip(),
    )


__all__ = [
    "IdentityApiModule",
    "IdentityRuntimeSettings",
    "build_identity_api_module",
    "resolve_identity_runtime_settings",
]
