"""Resolve one user's play count for a comparison target and window.

Three strategies, chosen by window:

- **All time**: ``artist.getInfo`` / ``album.getInfo`` / ``track.getInfo``
  with ``username``, reading the user-specific ``userplaycount``.
- **Rolling** (7d/30d/365d): the user's ranked top list for the matching
  built-in period, scanned for a trimmed, case-insensitive exact match.
  The list is capped at ``rank_list_limit`` entries (1000 by default), so a
  target ranked below the cap resolves to 0. This is a known accuracy bound
  of the remote API, not corrected here.
- **Calendar / custom range** (artists only): ``user.getArtistTracks``
  with ``from``/``to``, then with ``startTimestamp``/``endTimestamp`` if the
  first total is 0.

A failed remote call resolves to 0: absence of data is a zero count.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from scrobble_guessr.errors import RemoteError, ValidationError
from scrobble_guessr.lastfm_client import LastfmClient, build_request, top_list_request
from scrobble_guessr.models import CategoryKind
from scrobble_guessr.normalizer import artist_name, as_count, as_text, list_items
from scrobble_guessr.windows import ROLLING_PERIODS, DateRange, Window, window_bounds

logger = logging.getLogger(__name__)

DEFAULT_RANK_LIST_LIMIT = 1000


@dataclass(frozen=True)
class ComparisonTarget:
    """What a leaderboard compares: an artist, or an album/track by an artist."""

    kind: CategoryKind
    artist: str
    album: str = ""
    track: str = ""

    @property
    def title(self) -> str:
        """Album or track title; the artist name for artist targets."""
        if self.kind is CategoryKind.ALBUM:
            return self.album
        if self.kind is CategoryKind.TRACK:
            return self.track
        return self.artist


def validate_target(target: ComparisonTarget, window: Window | DateRange) -> ComparisonTarget:
    """Check required fields and window support; return a trimmed copy.

    Raises:
        ValidationError: With a message suitable for the user.
    """
    trimmed = ComparisonTarget(
        kind=target.kind,
        artist=(target.artist or "").strip(),
        album=(target.album or "").strip(),
        track=(target.track or "").strip(),
    )
    if trimmed.kind is CategoryKind.ARTIST and not trimmed.artist:
        raise ValidationError("Enter an artist name.")
    if trimmed.kind is CategoryKind.ALBUM and not (trimmed.artist and trimmed.album):
        raise ValidationError("Enter both artist and album.")
    if trimmed.kind is CategoryKind.TRACK and not (trimmed.artist and trimmed.track):
        raise ValidationError("Enter both artist and track.")

    calendar = isinstance(window, DateRange) or window.is_calendar
    if calendar and trimmed.kind is not CategoryKind.ARTIST:
        raise ValidationError(
            "Calendar windows are only supported for artists. "
            "Use all time or 7d/30d/365d for albums and tracks."
        )
    return trimmed


def _match_key(value: str) -> str:
    return value.strip().lower()


# ---------------------------------------------------------------------------
# All time
# ---------------------------------------------------------------------------


def _user_playcount(kind: CategoryKind, payload: Any) -> int:
    """Read the user-specific cumulative count from an ``*.getInfo`` payload."""
    if not isinstance(payload, dict):
        return 0
    if kind is CategoryKind.ARTIST:
        artist = payload.get("artist")
        stats = artist.get("stats") if isinstance(artist, dict) else None
        return as_count(stats.get("userplaycount")) if isinstance(stats, dict) else 0
    entity = payload.get(kind.value)
    return as_count(entity.get("userplaycount")) if isinstance(entity, dict) else 0


async def _all_time_count(client: LastfmClient, subject: str, target: ComparisonTarget) -> int:
    params: dict[str, str] = {"artist": target.artist}
    if target.kind is not CategoryKind.ARTIST:
        params[target.kind.value] = target.title
    params["username"] = subject
    payload = await client.request(build_request(f"{target.kind.value}.getInfo", params))
    return _user_playcount(target.kind, payload)


# ---------------------------------------------------------------------------
# Rolling
# ---------------------------------------------------------------------------


def ranked_count(kind: CategoryKind, payload: Any, target: ComparisonTarget) -> int:
    """Play count of *target* in a top-list payload, 0 when not listed."""
    container = f"top{kind.plural}"
    want_name = _match_key(target.title)
    want_artist = _match_key(target.artist)
    for entry in list_items(payload, container, kind.value):
        if _match_key(as_text(entry.get("name"))) != want_name:
            continue
        if kind is not CategoryKind.ARTIST:
            if _match_key(artist_name(entry.get("artist"))) != want_artist:
                continue
        return as_count(entry.get("playcount"))
    return 0


async def _rolling_count(
    client: LastfmClient,
    subject: str,
    target: ComparisonTarget,
    window: Window,
    rank_list_limit: int,
) -> int:
    payload = await client.request(
        top_list_request(subject, target.kind, ROLLING_PERIODS[window], limit=rank_list_limit)
    )
    return ranked_count(target.kind, payload, target)


# ---------------------------------------------------------------------------
# Calendar / custom range
# ---------------------------------------------------------------------------


def artist_tracks_total(payload: Any) -> int:
    """``artisttracks.@attr.total``, else the length of the track list, else 0."""
    listing = payload.get("artisttracks") if isinstance(payload, dict) else None
    if not isinstance(listing, dict):
        return 0
    attr = listing.get("@attr")
    if isinstance(attr, dict) and attr.get("total") is not None:
        try:
            total = float(attr["total"])
        except (TypeError, ValueError):
            total = math.nan
        if math.isfinite(total):
            return max(int(total), 0)
    tracks = listing.get("track")
    if isinstance(tracks, list):
        return len(tracks)
    return 0


async def _windowed_artist_count(
    client: LastfmClient, subject: str, artist: str, bounds: DateRange
) -> int:
    """Query the windowed listing under both parameter conventions."""
    first = await client.request(
        build_request(
            "user.getArtistTracks",
            {
                "user": subject,
                "artist": artist,
                "from": bounds.start,
                "to": bounds.end,
                "limit": 1,
                "page": 1,
            },
        )
    )
    total = artist_tracks_total(first)
    if total > 0:
        return total

    second = await client.request(
        build_request(
            "user.getArtistTracks",
            {
                "user": subject,
                "artist": artist,
                "startTimestamp": bounds.start,
                "endTimestamp": bounds.end,
                "limit": 1,
                "page": 1,
            },
        )
    )
    return artist_tracks_total(second)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def resolve_count(
    client: LastfmClient,
    subject: str,
    target: ComparisonTarget,
    window: Window | DateRange,
    *,
    now: datetime | None = None,
    rank_list_limit: int = DEFAULT_RANK_LIST_LIMIT,
) -> int:
    """Play count of *target* for *subject* over *window*.

    Args:
        client: Last.fm client.
        subject: Username.
        target: Validated comparison target.
        window: A leaderboard window, or an explicit ``DateRange``.
        now: Reference time for calendar windows (defaults to now, UTC).
        rank_list_limit: Entries fetched for rolling-window scans.

    Returns:
        Non-negative count; 0 when the remote call fails or nothing matches.

    Raises:
        ValidationError: Calendar window requested for an album or track.
    """
    if isinstance(window, DateRange):
        bounds: DateRange | None = window
    elif window.is_calendar:
        bounds = window_bounds(window, now)
    else:
        bounds = None
    if bounds is not None and target.kind is not CategoryKind.ARTIST:
        raise ValidationError("Calendar windows are only supported for artists.")

    try:
        if bounds is not None:
            return await _windowed_artist_count(client, subject, target.artist, bounds)
        if window is Window.ALL:
            return await _all_time_count(client, subject, target)
        return await _rolling_count(client, subject, target, window, rank_list_limit)
    except RemoteError as exc:
        logger.warning(
            "Count lookup failed, reporting 0: user=%s %s=%r: %s",
            subject,
            target.kind.value,
            target.title,
            exc,
        )
        return 0
