from __future__ import annotations

from datetime import datetime, timezone


class SystemClock:
    """
    SystemClock — platform clock: "now" from the system wall clock in UTC.

    Satisfies the `now() -> datetime` clock ports of the encryption, journal and identity
    contexts.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
