"""Per-target leaderboard across a crowd of users.

``build_leaderboard`` resolves one count per user through the bounded pool
and partitions the crowd: users with a positive count become ranked rows
(highest first, ties in crowd order), everyone else (zero or failed lookup)
goes to ``missing``, sorted by name. Each user lands in exactly one of the
two.

``ScoreboardSession`` wraps the owner's friends list and the build step
behind a pending-operation guard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from scrobble_guessr.count_resolver import (
    DEFAULT_RANK_LIST_LIMIT,
    ComparisonTarget,
    resolve_count,
    validate_target,
)
from scrobble_guessr.errors import ValidationError
from scrobble_guessr.lastfm_client import Friend, LastfmClient
from scrobble_guessr.library_links import (
    album_library_link,
    artist_library_link,
    track_library_link,
)
from scrobble_guessr.models import CategoryKind
from scrobble_guessr.pool import DEFAULT_CONCURRENCY, run_bounded
from scrobble_guessr.session import PendingOperationGuard
from scrobble_guessr.windows import DateRange, Window, utc_now, window_bounds

logger = logging.getLogger(__name__)

# Transparent Last.fm placeholder avatar
DEFAULT_AVATAR = (
    "https://lastfm.freetls.fastly.net/i/u/avatar170s/2a96cbd8b46e442fc41c2b86b821562f.png"
)


@dataclass(frozen=True)
class LeaderboardRow:
    """One ranked user."""

    subject: str
    avatar_url: str
    count: int
    library_link: str


@dataclass(frozen=True)
class Leaderboard:
    """Ranked rows and the users with nothing to rank."""

    rows: tuple[LeaderboardRow, ...]
    missing: tuple[str, ...]


def library_link(
    subject: str,
    target: ComparisonTarget,
    window: Window | DateRange,
    now: datetime | None = None,
) -> str:
    """Library page for *subject* and *target*; artist links carry the window dates."""
    if target.kind is CategoryKind.ALBUM:
        return album_library_link(subject, target.artist, target.album)
    if target.kind is CategoryKind.TRACK:
        return track_library_link(subject, target.artist, target.track)
    bounds = window if isinstance(window, DateRange) else window_bounds(window, now)
    return artist_library_link(subject, target.artist, bounds)


def partition(
    subjects: Sequence[str], rows: Sequence[LeaderboardRow | None]
) -> Leaderboard:
    """Split resolved rows into ranked rows and missing subjects.

    ``rows[i]`` belongs to ``subjects[i]``; ``None`` marks a failed lookup.
    """
    ranked: list[LeaderboardRow] = []
    ranked_names: set[str] = set()
    for row in rows:
        if row is not None and row.count > 0 and row.subject not in ranked_names:
            ranked.append(row)
            ranked_names.add(row.subject)
    ranked.sort(key=lambda row: row.count, reverse=True)

    missing = sorted({subject for subject in subjects if subject not in ranked_names})
    return Leaderboard(rows=tuple(ranked), missing=tuple(missing))


async def build_leaderboard(
    client: LastfmClient,
    target: ComparisonTarget,
    window: Window | DateRange,
    crowd: Sequence[Friend],
    *,
    now: datetime | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    rank_list_limit: int = DEFAULT_RANK_LIST_LIMIT,
) -> Leaderboard:
    """Resolve *target* over *window* for every member of *crowd*.

    Raises:
        ValidationError: Missing target fields, unsupported window for the
            target kind, or an empty crowd.
    """
    target = validate_target(target, window)
    if not crowd:
        raise ValidationError("No users to compare.")
    now = now or utc_now()

    def make_job(member: Friend):
        async def job() -> LeaderboardRow:
            count = await resolve_count(
                client,
                member.name,
                target,
                window,
                now=now,
                rank_list_limit=rank_list_limit,
            )
            return LeaderboardRow(
                subject=member.name,
                avatar_url=member.avatar or DEFAULT_AVATAR,
                count=count,
                library_link=library_link(member.name, target, window, now),
            )

        return job

    results = await run_bounded([make_job(member) for member in crowd], limit=concurrency)
    board = partition([member.name for member in crowd], results)
    logger.info(
        "Leaderboard %s=%r window=%s: %d ranked, %d missing",
        target.kind.value,
        target.title,
        window.value if isinstance(window, Window) else f"{window.start}-{window.end}",
        len(board.rows),
        len(board.missing),
    )
    return board


def assemble_crowd(owner: str, friends: Sequence[Friend]) -> list[Friend]:
    """Owner first, then friends, deduplicated by exact name."""
    seen: set[str] = set()
    crowd: list[Friend] = []
    owner = owner.strip()
    if owner:
        seen.add(owner)
        crowd.append(Friend(name=owner))
    for friend in friends:
        if friend.name and friend.name not in seen:
            seen.add(friend.name)
            crowd.append(friend)
    return crowd


@dataclass
class ScoreboardSession:
    """An owner, their friends, and the last leaderboard built for them."""

    owner: str
    friends: list[Friend] = field(default_factory=list)
    last_board: Leaderboard | None = None
    _guard: PendingOperationGuard = field(
        default_factory=PendingOperationGuard, init=False, repr=False
    )

    @property
    def crowd(self) -> list[Friend]:
        return assemble_crowd(self.owner, self.friends)

    async def load_friends(self, client: LastfmClient) -> list[Friend]:
        """Fetch the owner's friends list.

        Raises:
            ValidationError: No owner username.
            RemoteError: The friends list could not be loaded.
        """
        if not self.owner.strip():
            raise ValidationError("Enter your Last.fm username.")
        async with self._guard:
            self.friends = await client.friends(self.owner.strip())
        return self.friends

    async def build(
        self,
        client: LastfmClient,
        target: ComparisonTarget,
        window: Window | DateRange,
        **kwargs,
    ) -> Leaderboard:
        """Build a leaderboard over the owner and their loaded friends."""
        if not self.owner.strip():
            raise ValidationError("Enter your Last.fm username and load friends first.")
        async with self._guard:
            self.last_board = await build_leaderboard(
                client, target, window, self.crowd, **kwargs
            )
        return self.last_board
