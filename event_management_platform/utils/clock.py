"""
Time source used by the booking rules.

Services never call ``datetime.now`` directly so that the cancellation
window and processing timestamps can be pinned in tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, current: datetime):
        self.current = as_utc(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to an aware UTC value.

    SQLite hands back naive datetimes even for timezone-aware columns, so
    everything read from the database goes through here before comparison.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_default_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return _default_clock
