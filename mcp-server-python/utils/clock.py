"""
Injectable time source for date stamping and identifier generation.

Tools accept a ``clock`` argument (any zero-argument callable returning a
``datetime``) so tests can pin "now" to a fixed instant.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


def fixed_clock(instant: datetime) -> Clock:
    """Return a clock that always reports ``instant``."""

    def _clock() -> datetime:
        return instant

    return _clock


def resolve_clock(clock: Optional[Clock]) -> Clock:
    return clock if clock is not None else system_clock


def today(clock: Optional[Clock] = None) -> date:
    """Business date according to ``clock``."""
    return resolve_clock(clock)().date()


def format_date(value: date) -> str:
    """Format a business date as stored in the jobs table (YYYY-MM-DD)."""
    return value.isoformat()


def get_current_utc_timestamp(clock: Optional[Clock] = None) -> str:
    """
    Generate a UTC timestamp in ISO 8601 format with millisecond precision.

    Returns a timestamp string in the format: YYYY-MM-DDTHH:MM:SS.mmmZ
    Example: 2026-02-04T03:47:36.966Z

    Naive datetimes from a fixed clock are treated as UTC.
    """
    now = resolve_clock(clock)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
