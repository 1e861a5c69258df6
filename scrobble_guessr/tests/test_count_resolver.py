"""Tests for per-user play count resolution."""

from datetime import datetime, timezone

import pytest

from scrobble_guessr.count_resolver import (
    ComparisonTarget,
    artist_tracks_total,
    resolve_count,
    validate_target,
)
from scrobble_guessr.errors import RemoteError, ValidationError
from scrobble_guessr.models import CategoryKind
from scrobble_guessr.tests.fake_lastfm import (
    FakeLastfmClient,
    top_albums,
    top_artists,
    top_tracks,
)
from scrobble_guessr.windows import DateRange, Window

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

ARTIST = ComparisonTarget(CategoryKind.ARTIST, artist="Sigur Rós")
ALBUM = ComparisonTarget(CategoryKind.ALBUM, artist="Radiohead", album="Kid A")
TRACK = ComparisonTarget(CategoryKind.TRACK, artist="Björk", track="Jóga")


def _artist_tracks(total=None, tracks=None) -> dict:
    listing: dict = {}
    if total is not None:
        listing["@attr"] = {"total": total}
    if tracks is not None:
        listing["track"] = tracks
    return {"artisttracks": listing}


class TestAllTime:
    async def test_artist_info_userplaycount(self) -> None:
        client = FakeLastfmClient(
            lambda m, p: {"artist": {"stats": {"userplaycount": "321"}}}
        )
        assert await resolve_count(client, "alice", ARTIST, Window.ALL) == 321
        assert client.calls == [
            ("artist.getInfo", {"artist": "Sigur Rós", "username": "alice"})
        ]

    async def test_album_info_userplaycount(self) -> None:
        client = FakeLastfmClient(lambda m, p: {"album": {"userplaycount": 12}})
        assert await resolve_count(client, "alice", ALBUM, Window.ALL) == 12
        assert client.calls == [
            ("album.getInfo", {"artist": "Radiohead", "album": "Kid A", "username": "alice"})
        ]

    async def test_track_info_userplaycount(self) -> None:
        client = FakeLastfmClient(lambda m, p: {"track": {"userplaycount": "4"}})
        assert await resolve_count(client, "alice", TRACK, Window.ALL) == 4
        assert client.calls[0][0] == "track.getInfo"
        assert client.calls[0][1]["track"] == "Jóga"

    @pytest.mark.parametrize(
        "payload",
        [{}, {"artist": {}}, {"artist": {"stats": {}}}, {"error": 6}, None],
    )
    async def test_absent_field_is_zero(self, payload) -> None:
        client = FakeLastfmClient(lambda m, p: payload)
        assert await resolve_count(client, "alice", ARTIST, Window.ALL) == 0


class TestRolling:
    async def test_artist_match_is_trimmed_and_case_insensitive(self) -> None:
        client = FakeLastfmClient(
            lambda m, p: top_artists(("Björk", 50), ("  sigur rós ", 17))
        )
        assert await resolve_count(client, "alice", ARTIST, Window.SEVEN_DAYS) == 17
        method, params = client.calls[0]
        assert method == "user.getTopArtists"
        assert params["period"] == "7day"
        assert params["limit"] == "1000"

    @pytest.mark.parametrize(
        "window, period",
        [(Window.THIRTY_DAYS, "1month"), (Window.YEAR, "12month")],
    )
    async def test_window_maps_to_period(self, window: Window, period: str) -> None:
        client = FakeLastfmClient(lambda m, p: top_albums(("KID A", "radiohead", 9)))
        assert await resolve_count(client, "alice", ALBUM, window) == 9
        assert client.calls[0] == (
            "user.getTopAlbums",
            {"user": "alice", "period": period, "limit": "1000", "page": "1"},
        )

    async def test_album_requires_artist_match(self) -> None:
        client = FakeLastfmClient(lambda m, p: top_albums(("Kid A", "Someone Else", 9)))
        assert await resolve_count(client, "alice", ALBUM, Window.YEAR) == 0

    async def test_track_match(self) -> None:
        client = FakeLastfmClient(
            lambda m, p: top_tracks(("Hunter", "Björk", 3), ("Jóga", "Björk", 8))
        )
        assert await resolve_count(client, "alice", TRACK, Window.THIRTY_DAYS) == 8

    async def test_not_in_ranked_list_is_zero(self) -> None:
        client = FakeLastfmClient(lambda m, p: top_artists(("Björk", 50)))
        assert await resolve_count(client, "alice", ARTIST, Window.SEVEN_DAYS) == 0

    async def test_rank_list_limit_is_configurable(self) -> None:
        client = FakeLastfmClient(lambda m, p: top_artists())
        await resolve_count(client, "alice", ARTIST, Window.SEVEN_DAYS, rank_list_limit=50)
        assert client.calls[0][1]["limit"] == "50"


class TestCalendar:
    async def test_falls_back_to_second_convention(self) -> None:
        def handler(method: str, params: dict[str, str]):
            if "from" in params:
                return _artist_tracks(total="0")
            return _artist_tracks(total="5")

        client = FakeLastfmClient(handler)
        count = await resolve_count(client, "alice", ARTIST, Window.THIS_MONTH, now=NOW)

        assert count == 5
        first, second = client.calls
        start = str(int(datetime(2024, 3, 1, tzinfo=timezone.utc).timestamp()))
        end = str(int(NOW.timestamp()))
        assert first[0] == second[0] == "user.getArtistTracks"
        assert (first[1]["from"], first[1]["to"]) == (start, end)
        assert (second[1]["startTimestamp"], second[1]["endTimestamp"]) == (start, end)
        assert first[1]["limit"] == "1"

    async def test_positive_first_total_skips_fallback(self) -> None:
        client = FakeLastfmClient(lambda m, p: _artist_tracks(total="11"))
        assert await resolve_count(client, "alice", ARTIST, Window.THIS_YEAR, now=NOW) == 11
        assert len(client.calls) == 1

    async def test_custom_date_range(self) -> None:
        client = FakeLastfmClient(lambda m, p: _artist_tracks(total="2"))
        count = await resolve_count(client, "alice", ARTIST, DateRange(100, 200))
        assert count == 2
        assert client.calls[0][1]["from"] == "100"

    async def test_album_calendar_rejected_before_request(self) -> None:
        client = FakeLastfmClient(lambda m, p: {})
        with pytest.raises(ValidationError):
            await resolve_count(client, "alice", ALBUM, Window.THIS_MONTH, now=NOW)
        assert client.calls == []

    def test_total_extraction(self) -> None:
        assert artist_tracks_total(_artist_tracks(total="7")) == 7
        assert artist_tracks_total(_artist_tracks(total="n/a", tracks=[{}, {}])) == 2
        assert artist_tracks_total(_artist_tracks(tracks=[{}])) == 1
        assert artist_tracks_total(_artist_tracks()) == 0
        assert artist_tracks_total({"error": 6}) == 0


class TestFailures:
    @pytest.mark.parametrize(
        "target, window",
        [
            (ARTIST, Window.ALL),
            (TRACK, Window.SEVEN_DAYS),
            (ARTIST, Window.THIS_MONTH),
        ],
    )
    async def test_remote_error_resolves_to_zero(self, target, window) -> None:
        client = FakeLastfmClient(lambda m, p: RemoteError(500))
        assert await resolve_count(client, "alice", target, window, now=NOW) == 0

    async def test_unexpected_error_propagates(self) -> None:
        client = FakeLastfmClient(lambda m, p: RuntimeError("bug"))
        with pytest.raises(RuntimeError):
            await resolve_count(client, "alice", ARTIST, Window.ALL)


class TestValidateTarget:
    def test_trims_fields(self) -> None:
        target = validate_target(
            ComparisonTarget(CategoryKind.ALBUM, artist=" Radiohead ", album=" Kid A"),
            Window.ALL,
        )
        assert (target.artist, target.album) == ("Radiohead", "Kid A")

    @pytest.mark.parametrize(
        "target, message",
        [
            (ComparisonTarget(CategoryKind.ARTIST, artist="  "), "artist name"),
            (ComparisonTarget(CategoryKind.ALBUM, artist="X"), "artist and album"),
            (ComparisonTarget(CategoryKind.TRACK, artist="", track="Y"), "artist and track"),
        ],
    )
    def test_missing_fields(self, target, message) -> None:
        with pytest.raises(ValidationError, match=message):
            validate_target(target, Window.ALL)

    @pytest.mark.parametrize("window", [Window.THIS_MONTH, Window.THIS_YEAR, DateRange(1, 2)])
    def test_calendar_windows_artist_only(self, window) -> None:
        with pytest.raises(ValidationError, match="only supported for artists"):
            validate_target(TRACK, window)
        assert validate_target(ARTIST, window) == ARTIST
