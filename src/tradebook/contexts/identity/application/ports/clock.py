from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IdentityClock(Protocol):
    """IdentityClock — UTC clock used for token expiration checks."""

    def now(self) -> datetime:
        ...


__all__ = ["IdentityClock"]
