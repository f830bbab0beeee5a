from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence
from uuid import UUID

from tradebook.contexts.encryption.domain.errors import FieldEncryptionError, KeyServiceError
from tradebook.contexts.journal.application.ports.store_errors import (
    JournalStoreError,
    SecurityContextError,
    StoreErrorKind,
    StoreUnavailableError,
)
from tradebook.platform.errors import TradebookError

log = logging.getLogger(__name__)

TRADEBOOK_NOT_FOUND_MESSAGE = "Tradebook not found or access denied"
TRADE_NOT_FOUND_MESSAGE = "Trade not found or access denied"


def validation_error(
    *,
    message: str,
    errors: Sequence[Mapping[str, str]] | None = None,
) -> TradebookError:
    """
    Build canonical `validation_error` TradebookError with deterministic sorted errors list.

    Args:
        message: Human-readable validation failure description.
        errors: Optional validation item list (`path`, `code`, `message`).
    Returns:
        TradebookError: Canonical validation error object.
    Assumptions:
        Each validation item is JSON-serializable and contains string fields.
    Raises:
        None.
    Side Effects:
        None.
    """
    details: dict[str, Any] = {}
    if errors is not None:
        details["errors"] = sorted(
            (
                {
                    "path": str(item.get("path", "unknown")),
                    "code": str(item.get("code", "validation_error")),
                    "message": str(item.get("message", "Validation error")),
                }
                for item in errors
            ),
            key=lambda row: (row["path"], row["code"], row["message"]),
        )
    return TradebookError(code="validation_error", message=message, details=details)


def tradebook_not_found(*, tradebook_id: UUID) -> TradebookError:
    """
    Build not-found error that does not distinguish missing from forbidden tradebooks.

    Args:
        tradebook_id: Requested tradebook identifier (already known to the caller).
    Returns:
        TradebookError: Not-found error contract.
    Assumptions:
        Missing, foreign, and insufficient-role tradebooks share one response.
    Raises:
        None.
    Side Effects:
        None.
    """
    return TradebookError(
        code="not_found",
        message=TRADEBOOK_NOT_FOUND_MESSAGE,
        details={"tradebook_id": str(tradebook_id)},
    )


def trade_not_found(*, tradebook_id: UUID, trade_id: UUID) -> TradebookError:
    return TradebookError(
        code="not_found",
        message=TRADE_NOT_FOUND_MESSAGE,
        details={"tradebook_id": str(tradebook_id), "trade_id": str(trade_id)},
    )


def map_journal_exception(*, error: Exception, operation: str) -> TradebookError:
    """
    Map storage/encryption failures to canonical TradebookError variants.

    Args:
        error: Caught exception.
        operation: Use-case operation name used in server-side logs.
    Returns:
        TradebookError: Canonical mapped error object.
    Assumptions:
        Internal failure details are logged server-side and never returned to clients.
    Raises:
        None.
    Side Effects:
        Writes one log record.
    """
    if isinstance(error, (StoreUnavailableError, SecurityContextError, KeyServiceError)):
        log.error(
            "journal operation unavailable: operation=%s error_type=%s",
            operation,
            type(error).__name__,
        )
        return TradebookError(
            code="service_unavailable",
            message="Journal storage is temporarily unavailable",
        )
    if isinstance(error, JournalStoreError) and error.kind is StoreErrorKind.NOT_FOUND:
        log.info("journal operation not found: operation=%s", operation)
        return TradebookError(code="not_found", message=TRADEBOOK_NOT_FOUND_MESSAGE)
    if isinstance(error, JournalStoreError) and error.kind is StoreErrorKind.CONFLICT:
        log.info("journal operation conflict: operation=%s", operation)
        return TradebookError(code="conflict", message="Resource already exists")
    if isinstance(error, FieldEncryptionError):
        log.error(
            "journal field decryption failed: operation=%s error_type=%s",
            operation,
            type(error).__name__,
        )
        return TradebookError(code="unexpected_error", message="Unexpected journal operation error")

    log.exception("journal operation failed: operation=%s", operation, exc_info=error)
    return TradebookError(code="unexpected_error", message="Unexpected journal operation error")


__all__ = [
    "TRADEBOOK_NOT_FOUND_MESSAGE",
    "TRADE_NOT_FOUND_MESSAGE",
    "map_journal_exception",
    "trade_not_found",
    "tradebook_not_found",
    "validation_error",
]
