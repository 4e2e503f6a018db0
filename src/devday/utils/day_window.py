"""Local-time day boundaries shared by every source parser."""

import re
from dataclasses import dataclass
from datetime import date as date_cls, datetime, timedelta

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DayWindow:
    """Inclusive [start_ms, end_ms] bounds of one calendar day in local time."""
    date: str
    start_ms: int
    end_ms: int

    def contains(self, ts_ms: int | None) -> bool:
        return ts_ms is not None and self.start_ms <= ts_ms <= self.end_ms

    def overlaps(self, first_ms: int, last_ms: int) -> bool:
        """True if the span [first_ms, last_ms] touches the window."""
        lo, hi = min(first_ms, last_ms), max(first_ms, last_ms)
        return lo <= self.end_ms and hi >= self.start_ms

    def clamp(self, ts_ms: int) -> int:
        return max(self.start_ms, min(self.end_ms, ts_ms))


def day_window(date: str) -> DayWindow:
    """Compute local midnight-to-midnight bounds for a YYYY-MM-DD string.

    Raises ValueError for anything that is not a real calendar date.
    """
    if not DATE_RE.match(date or ""):
        raise ValueError(f"Invalid date: {date!r} (expected YYYY-MM-DD)")
    day = datetime.strptime(date, "%Y-%m-%d")
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end = day.replace(hour=23, minute=59, second=59, microsecond=999000)
    return DayWindow(
        date=date,
        start_ms=_to_ms(start),
        end_ms=_to_ms(end),
    )


def resolve_date(value: str | None, today: date_cls | None = None) -> str:
    """Resolve "today", "yesterday" or an explicit YYYY-MM-DD to a date string."""
    if today is None:
        today = date_cls.today()
    if not value:
        return today.isoformat()
    lower = value.strip().lower()
    if lower == "today":
        return today.isoformat()
    if lower == "yesterday":
        return (today - timedelta(days=1)).isoformat()
    return value.strip()


def _to_ms(dt: datetime) -> int:
    # Naive datetimes are interpreted in local time by timestamp()
    return int(round(dt.timestamp() * 1000))
