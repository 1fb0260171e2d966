"""Clock implementation."""

from datetime import datetime, timezone

from calc_engine.domain.ports import ClockPort
from calc_engine.domain.types import Timestamp


class SystemClock(ClockPort):
    """System clock implementation."""

    def now(self) -> Timestamp:
        """Get current UTC timestamp."""
        return datetime.now(timezone.utc)
