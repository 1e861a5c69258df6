"""Normalize Last.fm top-list payloads into ``StatRecord`` lists.

The three top-list methods return differently shaped payloads::

    {"toptracks":  {"track":  [{"name", "playcount", "artist": {"name"}}]}}
    {"topalbums":  {"album":  [{"name", "playcount", "artist": {"name"} | "name"}]}}
    {"topartists": {"artist": [{"name", "playcount"}]}}

Normalization never raises. Missing or wrong-typed fields fall back to
``""`` for strings and ``0`` for counts, so a partial payload still yields
whatever records it can.
"""

from __future__ import annotations

from typing import Any

from scrobble_guessr.models import CategoryKind, StatRecord

_CONTAINER_KEYS: dict[CategoryKind, tuple[str, str]] = {
    CategoryKind.TRACK: ("toptracks", "track"),
    CategoryKind.ALBUM: ("topalbums", "album"),
    CategoryKind.ARTIST: ("topartists", "artist"),
}


def as_text(value: Any) -> str:
    """Return *value* if it is a string, else ``""``."""
    return value if isinstance(value, str) else ""


def as_count(value: Any) -> int:
    """Parse a play count; unparsable or negative values become 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        try:
            count = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0
    return max(count, 0)


def artist_name(value: Any) -> str:
    """Resolve an artist field given either as ``{"name": ...}`` or a bare string."""
    if isinstance(value, dict):
        return as_text(value.get("name"))
    return as_text(value)


def list_items(payload: Any, container: str, item: str) -> list[dict]:
    """Pull ``payload[container][item]`` as a list of dicts.

    A single object in place of a list counts as a one-element list.
    """
    if not isinstance(payload, dict):
        return []
    inner = payload.get(container)
    if not isinstance(inner, dict):
        return []
    items = inner.get(item)
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, list):
        return []
    return [entry for entry in items if isinstance(entry, dict)]


def normalize(kind: CategoryKind, payload: Any) -> list[StatRecord]:
    """Map a raw top-list payload for *kind* into ``StatRecord`` entries."""
    container, item = _CONTAINER_KEYS[kind]
    records: list[StatRecord] = []
    for entry in list_items(payload, container, item):
        if kind is CategoryKind.ARTIST:
            attributed = ""
        else:
            attributed = artist_name(entry.get("artist"))
        records.append(
            StatRecord(
                kind=kind,
                name=as_text(entry.get("name")),
                attributed_artist=attributed,
                playcount=as_count(entry.get("playcount")),
            )
        )
    return records
