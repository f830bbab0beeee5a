"""
API error handlers: TradebookError to HTTP status, request validation to `validation_error`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from tradebook.platform.errors import TradebookError

log = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1

_STATUS_BY_CODE: Mapping[str, int] = {
    "validation_error": 422,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "unexpected_error": 500,
    "service_unavailable": 503,
}


def register_api_error_handlers(*, app: FastAPI) -> None:
    """
    Install TradebookError and request-validation handlers on the application.

    Args:
        app: FastAPI application instance.
    Returns:
        None.
    Assumptions:
        Called once from the application factory.
    Raises:
        ValueError: If `app` is missing.
    Side Effects:
        Mutates FastAPI exception-handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_api_error_handlers requires app")

    app.add_exception_handler(TradebookError, tradebook_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)


def tradebook_error_handler(request: Request, error: Exception) -> JSONResponse:
    """
    Render TradebookError as `{"error": {...}}` with the mapped HTTP status.

    Args:
        request: Incoming request, used for log context only.
        error: Raised TradebookError.
    Returns:
        JSONResponse: Contract payload; retryable errors carry `Retry-After`.
    Assumptions:
        Unknown codes are server errors.
    Raises:
        None.
    Side Effects:
        Logs 5xx responses.
    """
    tradebook_error = cast(TradebookError, error)
    status_code = status_code_for_error_code(code=tradebook_error.code)
    if status_code >= 500:
        log.warning(
            "api request failed: method=%s path=%s code=%s status=%s",
            request.method,
            request.url.path,
            tradebook_error.code,
            status_code,
        )
    payload = tradebook_error.to_payload()
    if tradebook_error.code == "validation_error":
        details = payload["error"]["details"]
        if "errors" in details:
            details["errors"] = _sorted_validation_errors(raw_errors=details["errors"])
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if tradebook_error.retryable else None
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def request_validation_error_handler(request: Request, error: Exception) -> JSONResponse:
    validation_error = cast(RequestValidationError, error)
    return tradebook_error_handler(
        request,
        TradebookError(
            code="validation_error",
            message="Validation failed",
            details={"errors": _sorted_validation_errors(raw_errors=validation_error.errors())},
        ),
    )


def status_code_for_error_code(*, code: str) -> int:
    return _STATUS_BY_CODE.get(code, 500)


def _sorted_validation_errors(*, raw_errors: Any) -> list[dict[str, str]]:
    """
    Flatten validation errors into `path`/`code`/`message` items sorted by those keys.

    Args:
        raw_errors: pydantic error list or already-normalized `validation_error` items.
    Returns:
        list[dict[str, str]]: Sorted items.
    Assumptions:
        Unknown shapes are stringified under path `unknown`.
    Raises:
        None.
    Side Effects:
        None.
    """
    if not isinstance(raw_errors, Sequence) or isinstance(raw_errors, (str, bytes, bytearray)):
        return []

    items: list[dict[str, str]] = []
    for raw_error in raw_errors:
        if not isinstance(raw_error, Mapping):
            items.append({"path": "unknown", "code": "validation_error", "message": str(raw_error)})
        elif {"path", "code", "message"} <= raw_error.keys():
            items.append(
                {
                    "path": str(raw_error["path"]),
                    "code": str(raw_error["code"]),
                    "message": str(raw_error["message"]),
                }
            )
        else:
            items.append(
                {
                    "path": _error_path(loc=raw_error.get("loc")),
                    "code": _error_code(raw_type=raw_error.get("type")),
                    "message": str(raw_error.get("msg", "Validation error")),
                }
            )
    return sorted(items, key=lambda item: (item["path"], item["code"], item["message"]))


def _error_path(*, loc: Any) -> str:
    if loc is None:
        return "unknown"
    if isinstance(loc, Sequence) and not isinstance(loc, (str, bytes, bytearray)):
        return ".".join(str(part) for part in loc) or "unknown"
    return str(loc)


def _error_code(*, raw_type: Any) -> str:
    normalized = str(raw_type or "").strip().lower()
    if not normalized:
        return "validation_error"
    # pydantic reports absent fields as `missing`
    if normalized == "missing" or normalized.endswith(".missing"):
        return "required"
    return normalized
