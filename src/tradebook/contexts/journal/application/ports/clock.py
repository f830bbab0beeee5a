from __future__ import annotations

from datetime import datetime
from typing import Protocol


class JournalClock(Protocol):
    """
    JournalClock — source of UTC timestamps for journal writes.

    Related:
      - src/tradebook/platform/time/system_clock.py
      - src/tradebook/contexts/journal/application/use_cases/create_tradebook.py
    """

    def now(self) -> datetime:
        """
        Return current UTC timestamp.

        Returns:
            datetime: Timezone-aware UTC datetime.
        """
        ...
