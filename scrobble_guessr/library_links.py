"""Library page links for leaderboard rows.

Deterministic URL builders for a user's Last.fm library pages.
Pure functions: no HTTP, no state.
"""

from __future__ import annotations

from urllib.parse import quote, urlencode

from scrobble_guessr.windows import DateRange, ymd

LASTFM_BASE_URL = "https://www.last.fm"


def _library_base(username: str, artist: str) -> str:
    return (
        f"{LASTFM_BASE_URL}/user/{quote(username, safe='')}"
        f"/library/music/{quote(artist, safe='')}"
    )


def artist_library_link(username: str, artist: str, bounds: DateRange | None = None) -> str:
    """Artist library page; windowed requests add ``from``/``to`` dates."""
    base = _library_base(username, artist)
    if bounds is None:
        return base
    return f"{base}?{urlencode({'from': ymd(bounds.start), 'to': ymd(bounds.end)})}"


def album_library_link(username: str, artist: str, album: str) -> str:
    return f"{_library_base(username, artist)}/{quote(album, safe='')}"


def track_library_link(username: str, artist: str, track: str) -> str:
    return f"{_library_base(username, artist)}/{quote(track, safe='')}"
