"""
FastAPI application factory for the Tradebook API.
"""

from __future__ import annotations

import os
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Callable, Mapping

from fastapi import FastAPI

from apps.api.common.errors import register_api_error_handlers
from apps.api.wiring.modules import (
    JournalApiModule,
    build_identity_api_module,
    build_journal_api_module,
    install_journal_module,
)


def create_app(*, environ: Mapping[str, str] | None = None) -> FastAPI:
    """
    Build FastAPI app with identity and journal modules wired at startup.

    Related: apps.api.wiring.modules.identity,
      apps.api.wiring.modules.journal,
      apps.api.common.errors

    Args:
        environ: Optional environment mapping override.
    Returns:
        FastAPI: Application instance with registered routers.
    Assumptions:
        Modules wiring performs fail-fast validation before first request.
    Raises:
        FileNotFoundError: If an explicit journal config path is missing.
        ValueError: If identity or journal runtime settings are invalid.
    Side Effects:
        Reads journal YAML config and may open a Postgres connection pool.
    """
    effective_environ = os.environ if environ is None else environ
    identity_module = build_identity_api_module(environ=effective_environ)
    journal_module = build_journal_api_module(
        environ=effective_environ,
        identity_module=identity_module,
    )

    app = FastAPI(
        title="Tradebook API",
        version="1.0.0",
        lifespan=_build_lifespan(journal_module=journal_module),
    )
    register_api_error_handlers(app=app)
    install_journal_module(app=app, module=journal_module)
    return app


def _build_lifespan(
    *,
    journal_module: JournalApiModule,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            journal_module.close()

    return lifespan
