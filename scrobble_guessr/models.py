"""Core value types: subjects, periods, category kinds and stat records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

MAX_SUBJECTS = 10

_SUBJECT_SEPARATORS = re.compile(r"\n|,|;")


class CategoryKind(str, Enum):
    """Entity type a statistic is about."""

    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"

    @property
    def plural(self) -> str:
        """Plural form used in Last.fm method names and payload keys."""
        return f"{self.value}s"


class QuizPeriod(str, Enum):
    """Built-in Last.fm top-list periods aggregated for the quiz."""

    SEVEN_DAY = "7day"
    ONE_MONTH = "1month"
    TWELVE_MONTH = "12month"
    OVERALL = "overall"


ALL_PERIODS: tuple[QuizPeriod, ...] = tuple(QuizPeriod)
ALL_KINDS: tuple[CategoryKind, ...] = (
    CategoryKind.TRACK,
    CategoryKind.ALBUM,
    CategoryKind.ARTIST,
)


@dataclass(frozen=True)
class StatRecord:
    """One entry of a user's top list, already normalized.

    Attributes:
        kind: Which top list the entry came from.
        name: Track, album or artist name.
        attributed_artist: Artist credited on a track or album; empty for
            artist entries.
        playcount: Non-negative number of scrobbles.
    """

    kind: CategoryKind
    name: str
    attributed_artist: str
    playcount: int


def parse_subjects(raw: str | Iterable[str], limit: int = MAX_SUBJECTS) -> list[str]:
    """Split and clean a list of usernames.

    Accepts either free text separated by newlines, commas or semicolons, or
    an iterable of names. Names are trimmed, blanks are dropped, duplicates
    are removed case-insensitively keeping the first spelling seen, and the
    result is capped at *limit* entries.
    """
    if isinstance(raw, str):
        candidates: Iterable[str] = _SUBJECT_SEPARATORS.split(raw)
    else:
        candidates = raw

    seen: set[str] = set()
    out: list[str] = []
    for candidate in candidates:
        name = (candidate or "").strip()
        if not name:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(name)
        if len(out) >= limit:
            break
    return out
