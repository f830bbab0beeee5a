"""
Composition helpers for the journal API module: field encryption, storage and routers.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Mapping

from fastapi import APIRouter, FastAPI
from psycopg_pool import ConnectionPool

from apps.api.wiring.modules.identity import IdentityApiModule
from apps.api.wiring.modules.runtime_env import (
    FAIL_FAST_KEY,
    resolve_choice,
    resolve_env_name,
    resolve_fail_fast,
)
from tradebook.contexts.encryption.adapters.outbound.cache import ExpiringDekCache
from tradebook.contexts.encryption.adapters.outbound.crypto import (
    AesGcmFieldCipher,
    EnvelopeCipherResolver,
    MasterKeyCipherResolver,
)
from tradebook.contexts.encryption.adapters.outbound.kms import (
    Boto3KmsKeyService,
    LocalAesGcmKeyService,
)
from tradebook.contexts.encryption.application.ports import KeyService, TradebookCipherResolver
from tradebook.contexts.encryption.application.services import EnvelopeKeyManager
from tradebook.contexts.journal.adapters.inbound.api.routes import (
    build_internal_users_router,
    build_trades_router,
    build_tradebooks_router,
)
from tradebook.contexts.journal.adapters.outbound.persistence import (
    InMemoryJournalUnitOfWork,
    PsycopgJournalUnitOfWork,
)
from tradebook.contexts.journal.application.ports import JournalUnitOfWork
from tradebook.contexts.journal.application.use_cases import (
    CreateTradebookUseCase,
    CreateTradeUseCase,
    DeleteAllTradebooksUseCase,
    DeleteTradebookUseCase,
    DeleteTradeUseCase,
    DeleteUserUseCase,
    GetTradebookUseCase,
    GetTradeUseCase,
    ListTradebooksUseCase,
    ListTradesUseCase,
    RecordExitLegUseCase,
    RevokeTradebookMemberUseCase,
    ShareTradebookUseCase,
    UpdateTradebookUseCase,
    UpdateTradeUseCase,
    UpsertUserUseCase,
)
from tradebook.platform.config import JournalStorageConfig, load_journal_storage_config
from tradebook.platform.time import SystemClock

log = logging.getLogger(__name__)

_FIELD_ENCRYPTION_KEY = "TRADEBOOK_FIELD_ENCRYPTION"
_DB_KEY_B64_KEY = "TRADEBOOK_DB_KEY_B64"
_KMS_BACKEND_KEY = "TRADEBOOK_KMS_BACKEND"
_KMS_KEY_NAME_KEY = "TRADEBOOK_KMS_KEY_NAME"
_LOCAL_KEK_B64_KEY = "TRADEBOOK_LOCAL_KEK_B64"
_PG_DSN_KEY = "TRADEBOOK_PG_DSN"
_AWS_REGION_KEY = "AWS_REGION"
_ALLOWED_FIELD_ENCRYPTION = ("envelope", "master")
_ALLOWED_KMS_BACKENDS = ("aws", "local")
_DEV_DB_KEY_B64 = base64.b64encode(b"tradebook-dev-field-key-32-bytes").decode("ascii")
_DEV_LOCAL_KEK_B64 = base64.b64encode(b"tradebook-dev-local-kek-32-bytes").decode("ascii")
_DEV_KMS_KEY_NAME = "tradebook-dev-master-key"
_APP_STATE_KEY = "journal_module"


@dataclass(frozen=True, slots=True)
class JournalRuntimeSettings:
    """
    JournalRuntimeSettings — runtime policy for journal storage and field encryption.

    Related:
      - apps/api/wiring/modules/journal.py
      - src/tradebook/platform/config/journal_storage.py
      - src/tradebook/contexts/encryption/adapters/outbound/crypto/cipher_resolvers.py
    """

    env_name: str
    fail_fast: bool
    field_encryption: str
    db_key_b64: str
    kms_backend: str
    kms_key_name: str
    local_kek_b64: str
    aws_region: str
    postgres_dsn: str

    def __post_init__(self) -> None:
        """
        Validate mode-specific key material presence.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Values are normalized by resolver before dataclass construction.
        Raises:
            ValueError: If the selected mode lacks required key material.
        Side Effects:
            None.
        """
        if self.field_encryption not in _ALLOWED_FIELD_ENCRYPTION:
            raise ValueError(
                "JournalRuntimeSettings.field_encryption must be one of "
                f"{_ALLOWED_FIELD_ENCRYPTION}, got {self.field_encryption!r}"
            )
        if self.kms_backend not in _ALLOWED_KMS_BACKENDS:
            raise ValueError(
                "JournalRuntimeSettings.kms_backend must be one of "
                f"{_ALLOWED_KMS_BACKENDS}, got {self.kms_backend!r}"
            )
        if self.field_encryption == "master" and not self.db_key_b64:
            raise ValueError("JournalRuntimeSettings.db_key_b64 is required in master mode")
        if self.field_encryption == "envelope":
            if not self.kms_key_name:
                raise ValueError("JournalRuntimeSettings.kms_key_name is required in envelope mode")
            if self.kms_backend == "local" and not self.local_kek_b64:
                raise ValueError("JournalRuntimeSettings.local_kek_b64 is required for local KMS")


@dataclass(slots=True)
class JournalApiModule:
    """
    JournalApiModule — wired journal routers plus the resources they hold.

    `close` releases the connection pool when Postgres storage is used.
    """

    routers: tuple[APIRouter, ...]
    unit_of_work: JournalUnitOfWork
    cipher_resolver: TradebookCipherResolver
    closers: list[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        while self.closers:
            closer = self.closers.pop()
            closer()


def build_journal_api_module(
    *,
    environ: Mapping[str, str],
    identity_module: IdentityApiModule,
    storage_config: JournalStorageConfig | None = None,
) -> JournalApiModule:
    """
    Build fully wired journal routers from environment settings.

    Args:
        environ: Runtime environment mapping.
        identity_module: Authentication dependencies.
        storage_config: Optional pre-loaded storage config; loaded from YAML when omitted.
    Returns:
        JournalApiModule: Routers and owned resources.
    Assumptions:
        Without `TRADEBOOK_PG_DSN` the in-memory unit of work is used (dev/test only).
    Raises:
        ValueError: If settings are invalid or fail-fast policy requires missing values.
        FileNotFoundError: If an explicit config path does not exist.
    Side Effects:
        Opens a Postgres connection pool when DSN is configured.
    """
    settings = resolve_journal_runtime_settings(environ=environ)
    config = storage_config if storage_config is not None else load_journal_storage_config(
        environ=environ
    )
    clock = SystemClock()
    cipher_resolver = build_cipher_resolver(settings=settings, config=config)

    closers: list[Callable[[], None]] = []
    unit_of_work: JournalUnitOfWork
    if settings.postgres_dsn:
        pool = _build_connection_pool(dsn=settings.postgres_dsn, config=config)
        closers.append(pool.close)
        unit_of_work = PsycopgJournalUnitOfWork(
            pool=pool,
            cipher_resolver=cipher_resolver,
            statement_timeout_ms=config.statement_timeout_ms,
            acquire_timeout_s=float(config.pool_timeout_s),
        )
    else:
        log.warning("journal storage is in-memory: env=%s", settings.env_name)
        unit_of_work = InMemoryJournalUnitOfWork(cipher_resolver=cipher_resolver)

    current_user_dependency = identity_module.current_user_dependency
    routers = (
        build_tradebooks_router(
            create_use_case=CreateTradebookUseCase(unit_of_work=unit_of_work, clock=clock),
            get_use_case=GetTradebookUseCase(unit_of_work=unit_of_work),
            list_use_case=ListTradebooksUseCase(unit_of_work=unit_of_work),
            update_use_case=UpdateTradebookUseCase(unit_of_work=unit_of_work, clock=clock),
            delete_use_case=DeleteTradebookUseCase(unit_of_work=unit_of_work),
            delete_all_use_case=DeleteAllTradebooksUseCase(unit_of_work=unit_of_work),
            share_use_case=ShareTradebookUseCase(unit_of_work=unit_of_work, clock=clock),
            revoke_use_case=RevokeTradebookMemberUseCase(unit_of_work=unit_of_work),
            current_user_dependency=current_user_dependency,
        ),
        build_trades_router(
            create_use_case=CreateTradeUseCase(unit_of_work=unit_of_work, clock=clock),
            get_use_case=GetTradeUseCase(unit_of_work=unit_of_work),
            list_use_case=ListTradesUseCase(unit_of_work=unit_of_work),
            update_use_case=UpdateTradeUseCase(unit_of_work=unit_of_work, clock=clock),
            delete_use_case=DeleteTradeUseCase(unit_of_work=unit_of_work),
            exit_leg_use_case=RecordExitLegUseCase(unit_of_work=unit_of_work, clock=clock),
            current_user_dependency=current_user_dependency,
        ),
        build_internal_users_router(
            upsert_use_case=UpsertUserUseCase(unit_of_work=unit_of_work, clock=clock),
            delete_use_case=DeleteUserUseCase(unit_of_work=unit_of_work),
            internal_api_key_dependency=identity_module.internal_api_key_dependency,
        ),
    )
    return JournalApiModule(
        routers=routers,
        unit_of_work=unit_of_work,
        cipher_resolver=cipher_resolver,
        closers=closers,
    )


def install_journal_module(*, app: FastAPI, module: JournalApiModule) -> bool:
    """
    Attach journal module to application once.

    Args:
        app: FastAPI application.
        module: Wired journal module.
    Returns:
        bool: `True` when installed, `False` when a module was already installed.
    Assumptions:
        One journal module per application process.
    Raises:
        None.
    Side Effects:
        Stores module on `app.state` and includes its routers.
    """
    existing = getattr(app.state, _APP_STATE_KEY, None)
    if existing is not None:
        log.warning("journal module already installed; ignoring second install")
        return False
    setattr(app.state, _APP_STATE_KEY, module)
    for router in module.routers:
        app.include_router(router)
    return True


def build_cipher_resolver(
    *,
    settings: JournalRuntimeSettings,
    config: JournalStorageConfig,
    key_service: KeyService | None = None,
) -> TradebookCipherResolver:
    """
    Build field cipher resolver for the configured encryption mode.

    Args:
        settings: Resolved runtime settings.
        config: Storage config with DEK cache tuning.
        key_service: Optional pre-built key service (overrides `kms_backend`).
    Returns:
        TradebookCipherResolver: Master-key or envelope resolver.
    Assumptions:
        Master mode uses one process-wide key; envelope mode one DEK per tradebook.
    Raises:
        ValueError: If key material is malformed.
    Side Effects:
        May construct a boto3 KMS client.
    """
    if settings.field_encryption == "master":
        return MasterKeyCipherResolver(cipher=AesGcmFieldCipher.from_base64(settings.db_key_b64))

    effective_key_service = key_service
    if effective_key_service is None:
        effective_key_service = _build_key_service(settings=settings)
    cache = ExpiringDekCache(
        clock=SystemClock(),
        max_entries=config.dek_cache_max_entries,
        ttl=timedelta(seconds=config.dek_cache_ttl_s),
    )
    key_manager = EnvelopeKeyManager(
        key_service=effective_key_service,
        key_name=settings.kms_key_name,
        cache=cache,
    )
    return EnvelopeCipherResolver(key_manager=key_manager)


def resolve_journal_runtime_settings(*, environ: Mapping[str, str]) -> JournalRuntimeSettings:
    """
    Resolve journal runtime settings with fail-fast policy and dev defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        JournalRuntimeSettings: Validated normalized settings.
    Assumptions:
        Defaults: `master` mode, `local` KMS backend, dev keys when fail-fast is off.
    Raises:
        ValueError: If values are invalid or fail-fast policy requires missing values.
    Side Effects:
        Logs a warning naming env keys replaced by dev defaults.
    """
    env_name = resolve_env_name(environ=environ)
    fail_fast = resolve_fail_fast(environ=environ, env_name=env_name)
    field_encryption = resolve_choice(
        environ=environ,
        key=_FIELD_ENCRYPTION_KEY,
        allowed=_ALLOWED_FIELD_ENCRYPTION,
        default="master",
    )
    kms_backend = resolve_choice(
        environ=environ,
        key=_KMS_BACKEND_KEY,
        allowed=_ALLOWED_KMS_BACKENDS,
        default="local",
    )
    db_key_b64 = environ.get(_DB_KEY_B64_KEY, "").strip()
    kms_key_name = environ.get(_KMS_KEY_NAME_KEY, "").strip()
    local_kek_b64 = environ.get(_LOCAL_KEK_B64_KEY, "").strip()
    postgres_dsn = environ.get(_PG_DSN_KEY, "").strip()

    if fail_fast:
        if not postgres_dsn:
            raise ValueError(f"{_PG_DSN_KEY} must be set when {FAIL_FAST_KEY}=true")
        if field_encryption == "master" and not db_key_b64:
            raise ValueError(f"{_DB_KEY_B64_KEY} must be set when {FAIL_FAST_KEY}=true")
        if field_encryption == "envelope" and not kms_key_name:
            raise ValueError(f"{_KMS_KEY_NAME_KEY} must be set when {FAIL_FAST_KEY}=true")
        if field_encryption == "envelope" and kms_backend == "local" and not local_kek_b64:
            raise ValueError(f"{_LOCAL_KEK_B64_KEY} must be set when {FAIL_FAST_KEY}=true")

    dev_fallbacks: list[str] = []
    if field_encryption == "master" and not db_key_b64:
        dev_fallbacks.append(_DB_KEY_B64_KEY)
    if field_encryption == "envelope" and not kms_key_name:
        dev_fallbacks.append(_KMS_KEY_NAME_KEY)
    if field_encryption == "envelope" and kms_backend == "local" and not local_kek_b64:
        dev_fallbacks.append(_LOCAL_KEK_B64_KEY)
    if dev_fallbacks:
        log.warning(
            "journal encryption uses dev key material: env=%s keys=%s",
            env_name,
            ",".join(dev_fallbacks),
        )

    return JournalRuntimeSettings(
        env_name=env_name,
        fail_fast=fail_fast,
        field_encryption=field_encryption,
        db_key_b64=db_key_b64 or _DEV_DB_KEY_B64,
        kms_backend=kms_backend,
        kms_key_name=kms_key_name or _DEV_KMS_KEY_NAME,
        local_kek_b64=local_kek_b64 or _DEV_LOCAL_KEK_B64,
        aws_region=environ.get(_AWS_REGION_KEY, "").strip(),
        postgres_dsn=postgres_dsn,
    )


def _build_key_service(*, settings: JournalRuntimeSettings) -> KeyService:
    if settings.kms_backend == "aws":
        return Boto3KmsKeyService.from_region(region_name=settings.aws_region or None)
    return LocalAesGcmKeyService(kek_b64=settings.local_kek_b64)


def _build_connection_pool(*, dsn: str, config: JournalStorageConfig) -> ConnectionPool[Any]:
    return ConnectionPool(
        conninfo=dsn,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        max_lifetime=float(config.pool_max_lifetime_s),
        max_idle=float(config.pool_max_idle_s),
        timeout=float(config.pool_timeout_s),
        name="tradebook-journal",
        open=True,
    )


__all__ = [
    "JournalApiModule",
    "JournalRuntimeSettings",
    "build_cipher_resolver",
    "build_journal_api_module",
    "install_journal_module",
    "resolve_journal_runtime_settings",
]
