"""Tests for subject parsing and enum values."""

from scrobble_guessr.models import (
    ALL_KINDS,
    ALL_PERIODS,
    CategoryKind,
    QuizPeriod,
    parse_subjects,
)


class TestParseSubjects:
    def test_splits_on_newlines_commas_and_semicolons(self) -> None:
        assert parse_subjects("alice, bob;carol\ndave") == ["alice", "bob", "carol", "dave"]

    def test_dedupes_case_insensitively_keeping_first_spelling(self) -> None:
        assert parse_subjects("Alice, bob, ALICE, Bob , carol") == ["Alice", "bob", "carol"]

    def test_drops_blanks(self) -> None:
        assert parse_subjects(" , ;\n\n alice ,, ") == ["alice"]

    def test_caps_at_ten(self) -> None:
        raw = ",".join(f"user{i}" for i in range(15))
        assert parse_subjects(raw) == [f"user{i}" for i in range(10)]

    def test_duplicates_do_not_count_toward_cap(self) -> None:
        raw = ["a", "A", "a"] + [f"u{i}" for i in range(12)]
        result = parse_subjects(raw)
        assert len(result) == 10
        assert result[0] == "a"
        assert result[-1] == "u8"

    def test_idempotent_under_reparsing(self) -> None:
        raw = "Zed, zed, amy, AMY, bo, Bo, cy, dee, eve, fay, gus, hal, ivy, jo"
        once = parse_subjects(raw)
        assert parse_subjects(once) == once
        assert parse_subjects(", ".join(once)) == once

    def test_accepts_iterables(self) -> None:
        assert parse_subjects(["  alice ", "", "bob"]) == ["alice", "bob"]

    def test_custom_limit(self) -> None:
        assert parse_subjects("a,b,c", limit=2) == ["a", "b"]


class TestEnums:
    def test_periods(self) -> None:
        assert [p.value for p in ALL_PERIODS] == ["7day", "1month", "12month", "overall"]
        assert QuizPeriod.OVERALL == "overall"

    def test_kinds(self) -> None:
        assert [k.value for k in ALL_KINDS] == ["track", "album", "artist"]
        assert CategoryKind.ALBUM.plural == "albums"
