"""Tests for leaderboard windows and library link builders."""

from datetime import datetime, timezone

import pytest

from scrobble_guessr.errors import ValidationError
from scrobble_guessr.library_links import (
    album_library_link,
    artist_library_link,
    track_library_link,
)
from scrobble_guessr.windows import ROLLING_PERIODS, DateRange, Window, window_bounds, ymd

NOW = datetime(2024, 3, 15, 12, 30, tzinfo=timezone.utc)
NOW_TS = int(NOW.timestamp())


class TestWindowBounds:
    def test_all_time_has_no_bounds(self) -> None:
        assert window_bounds(Window.ALL, NOW) is None

    @pytest.mark.parametrize(
        "window, days",
        [(Window.SEVEN_DAYS, 7), (Window.THIRTY_DAYS, 30), (Window.YEAR, 365)],
    )
    def test_rolling_windows(self, window: Window, days: int) -> None:
        assert window_bounds(window, NOW) == DateRange(NOW_TS - days * 86400, NOW_TS)
        assert window.is_rolling and not window.is_calendar

    def test_this_month_starts_at_first_day_utc(self) -> None:
        bounds = window_bounds(Window.THIS_MONTH, NOW)
        assert bounds.start == int(datetime(2024, 3, 1, tzinfo=timezone.utc).timestamp())
        assert bounds.end == NOW_TS

    def test_this_year_starts_on_january_first_utc(self) -> None:
        bounds = window_bounds(Window.THIS_YEAR, NOW)
        assert bounds.start == int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
        assert Window.THIS_YEAR.is_calendar

    def test_rolling_period_names(self) -> None:
        assert ROLLING_PERIODS == {
            Window.SEVEN_DAYS: "7day",
            Window.THIRTY_DAYS: "1month",
            Window.YEAR: "12month",
        }

    def test_inverted_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DateRange(start=10, end=5)

    def test_ymd(self) -> None:
        assert ymd(NOW_TS) == "2024-03-15"


class TestLibraryLinks:
    def test_artist_all_time(self) -> None:
        assert (
            artist_library_link("alice", "Sigur Rós")
            == "https://www.last.fm/user/alice/library/music/Sigur%20R%C3%B3s"
        )

    def test_artist_windowed_has_dates(self) -> None:
        link = artist_library_link("alice", "AC/DC", window_bounds(Window.SEVEN_DAYS, NOW))
        assert link == (
            "https://www.last.fm/user/alice/library/music/AC%2FDC"
            "?from=2024-03-08&to=2024-03-15"
        )

    def test_album_and_track(self) -> None:
        assert (
            album_library_link("bob", "Radiohead", "Kid A")
            == "https://www.last.fm/user/bob/library/music/Radiohead/Kid%20A"
        )
        assert (
            track_library_link("bob", "Radiohead", "Idioteque")
            == "https://www.last.fm/user/bob/library/music/Radiohead/Idioteque"
        )
