from __future__ import annotations

from tradebook.contexts.journal.application.use_cases import validation_error
from tradebook.shared_kernel.primitives import UserId


def parse_user_id(*, raw: str, path: str) -> UserId:
    """
    Parse path/body user identifier into `UserId` or raise canonical validation error.

    Args:
        raw: Raw identifier string.
        path: Request location used in the validation error item.
    Returns:
        UserId: Normalized identifier.
    Assumptions:
        Identity provider subjects are opaque strings.
    Raises:
        TradebookError: `validation_error` when identifier is blank or malformed.
    Side Effects:
        None.
    """
    try:
        return UserId(raw)
    except ValueError as error:
        raise validation_error(
            message="Invalid user identifier",
            errors=[{"path": path, "code": "invalid_user_id", "message": str(error)}],
        ) from error


__all__ = ["parse_user_id"]
