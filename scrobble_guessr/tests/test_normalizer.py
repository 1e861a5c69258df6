"""Tests for top-list payload normalization."""

import pytest

from scrobble_guessr.models import CategoryKind, StatRecord
from scrobble_guessr.normalizer import as_count, normalize


class TestNormalizeShapes:
    def test_tracks_read_nested_artist(self) -> None:
        payload = {
            "toptracks": {
                "track": [
                    {"name": "Hoppípolla", "artist": {"name": "Sigur Rós"}, "playcount": "42"}
                ]
            }
        }
        assert normalize(CategoryKind.TRACK, payload) == [
            StatRecord(CategoryKind.TRACK, "Hoppípolla", "Sigur Rós", 42)
        ]

    def test_albums_accept_object_or_string_artist(self) -> None:
        payload = {
            "topalbums": {
                "album": [
                    {"name": "Takk...", "artist": {"name": "Sigur Rós"}, "playcount": "7"},
                    {"name": "Kid A", "artist": "Radiohead", "playcount": 3},
                ]
            }
        }
        records = normalize(CategoryKind.ALBUM, payload)
        assert [r.attributed_artist for r in records] == ["Sigur Rós", "Radiohead"]
        assert [r.playcount for r in records] == [7, 3]
        assert all(r.kind is CategoryKind.ALBUM for r in records)

    def test_artists_have_no_attributed_artist(self) -> None:
        payload = {
            "topartists": {
                "artist": [{"name": "Björk", "playcount": "100", "artist": {"name": "x"}}]
            }
        }
        assert normalize(CategoryKind.ARTIST, payload) == [
            StatRecord(CategoryKind.ARTIST, "Björk", "", 100)
        ]

    def test_single_object_counts_as_one_item(self) -> None:
        payload = {"topartists": {"artist": {"name": "Björk", "playcount": "1"}}}
        assert len(normalize(CategoryKind.ARTIST, payload)) == 1


class TestNormalizeDefaults:
    def test_missing_optional_fields_default(self) -> None:
        payload = {"toptracks": {"track": [{}, {"name": "Solo"}]}}
        assert normalize(CategoryKind.TRACK, payload) == [
            StatRecord(CategoryKind.TRACK, "", "", 0),
            StatRecord(CategoryKind.TRACK, "Solo", "", 0),
        ]

    def test_wrong_typed_fields_default(self) -> None:
        payload = {
            "topalbums": {
                "album": [
                    {"name": 12, "artist": {"name": None}, "playcount": "lots"},
                    {"name": "Ok", "artist": ["not", "a", "name"], "playcount": -4},
                    "not-a-dict",
                ]
            }
        }
        assert normalize(CategoryKind.ALBUM, payload) == [
            StatRecord(CategoryKind.ALBUM, "", "", 0),
            StatRecord(CategoryKind.ALBUM, "Ok", "", 0),
        ]

    @pytest.mark.parametrize(
        "payload",
        [None, {}, [], "error", {"toptracks": None}, {"toptracks": {"track": None}},
         {"toptracks": {"track": "x"}}, {"error": 6, "message": "User not found"}],
    )
    def test_malformed_payloads_yield_nothing(self, payload) -> None:
        assert normalize(CategoryKind.TRACK, payload) == []

    def test_wrong_container_for_kind(self) -> None:
        payload = {"topartists": {"artist": [{"name": "Björk"}]}}
        assert normalize(CategoryKind.TRACK, payload) == []


class TestAsCount:
    @pytest.mark.parametrize(
        "raw, expected",
        [("15", 15), (15, 15), ("15.0", 15), (None, 0), ("", 0), ("nan", 0),
         ("inf", 0), (-3, 0), (True, 0), ({}, 0)],
    )
    def test_parsing(self, raw, expected) -> None:
        assert as_count(raw) == expected
