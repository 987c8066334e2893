"""
Time provider abstraction for deterministic testing

Bid expiry, step timestamps and cost input expiry all depend on "now", so
time is injected everywhere instead of read from the clock.

Stored timestamps use one fixed-width UTC ISO format so that SQLite's text
ordering matches chronological ordering.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedTimeProvider:
    """
    Controllable time provider for deterministic tests

    Time only moves when a test moves it.
    """

    def __init__(self, initial_time: datetime | None = None) -> None:
        self._current_time = initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = dt

    def advance(self, delta: timedelta) -> None:
        self._current_time += delta

    def advance_hours(self, hours: float) -> None:
        self.advance(timedelta(hours=hours))

    def advance_days(self, days: int) -> None:
        self.advance(timedelta(days=days))


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_db_timestamp(dt: datetime | None) -> str | None:
    """Serialize a datetime for storage (naive values are taken as UTC)"""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


# Global default time provider
default_time_provider: TimeProvider = RealTimeProvider()
