"""Leaderboard time windows (UTC).

Rolling windows end now and reach back a fixed number of days. Calendar
windows start at the first instant of the current month or year. Bounds are
integer UNIX seconds, the unit ``user.getArtistTracks`` expects.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone

from scrobble_guessr.errors import ValidationError


class Window(str, enum.Enum):
    """Requested leaderboard window."""

    ALL = "all"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    YEAR = "365d"
    THIS_MONTH = "this_month"
    THIS_YEAR = "this_year"

    @property
    def is_rolling(self) -> bool:
        return self in _ROLLING_DAYS

    @property
    def is_calendar(self) -> bool:
        return self in (Window.THIS_MONTH, Window.THIS_YEAR)


_ROLLING_DAYS: dict[Window, int] = {
    Window.SEVEN_DAYS: 7,
    Window.THIRTY_DAYS: 30,
    Window.YEAR: 365,
}

# Built-in top-list period matching each rolling window.
ROLLING_PERIODS: dict[Window, str] = {
    Window.SEVEN_DAYS: "7day",
    Window.THIRTY_DAYS: "1month",
    Window.YEAR: "12month",
}


@dataclass(frozen=True)
class DateRange:
    """Explicit ``[start, end]`` range in UNIX seconds."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError("Date range start must not be after its end.")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def window_bounds(window: Window, now: datetime | None = None) -> DateRange | None:
    """Bounds of *window* ending at *now*; ``None`` for all time."""
    now = (now or utc_now()).astimezone(timezone.utc)
    end = int(now.timestamp())
    if window is Window.ALL:
        return None
    if window.is_rolling:
        return DateRange(start=end - _ROLLING_DAYS[window] * 86400, end=end)
    if window is Window.THIS_MONTH:
        start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    else:
        start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    return DateRange(start=int(start.timestamp()), end=end)


def ymd(timestamp: int) -> str:
    """``YYYY-MM-DD`` for a UNIX timestamp, in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
