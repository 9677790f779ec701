"""Tests for the iTunes fallback provider client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from revyou.config import ITunesSettings
from revyou.domain.entities import AlbumType, LookupOutcome, ProviderSource
from revyou.domain.exceptions import ExternalServiceError, RateLimitExceededError
from revyou.infrastructure.integrations.itunes_client import ITunesClient
from revyou.infrastructure.rate_limiter import RateLimiter


@pytest.fixture
def itunes_client() -> ITunesClient:
    return ITunesClient(ITunesSettings(album_limit=50), rate_limiter=RateLimiter(name="test"))


def collection(collection_id: int, name: str, release_date: str | None, **extra) -> dict:
    return {
        "wrapperType": "collection",
        "collectionId": collection_id,
        "collectionName": name,
        "artistName": "Daft Punk",
        "releaseDate": release_date,
        "trackCount": 10,
        "artworkUrl100": f"https://is1/{collection_id}/100x100bb.jpg",
        "primaryGenreName": "Electronic",
        **extra,
    }


class TestITunesLookupArtist:
    async def test_artist_is_mapped(self, itunes_client: ITunesClient, mocker: MagicMock) -> None:
        request = mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[
                {"artistId": 5468295, "artistName": "Daft Punk", "primaryGenreName": "Electronic"}
            ],
        )

        result = await itunes_client.lookup_artist("Daft Punk")

        assert result.is_found
        assert result.value.id == "5468295"
        assert result.value.source is ProviderSource.ITUNES
        assert result.value.genres == ["Electronic"]
        assert request.await_args.args[1]["entity"] == "allArtist"

    async def test_no_results_is_not_found(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(itunes_client, "_api_request", return_value=[])

        result = await itunes_client.lookup_artist("Nobody")

        assert result.outcome is LookupOutcome.NOT_FOUND

    async def test_service_error_is_transport_error(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client, "_api_request", side_effect=RateLimitExceededError("iTunes")
        )

        result = await itunes_client.lookup_artist("Daft Punk")

        assert result.outcome is LookupOutcome.TRANSPORT_ERROR


class TestITunesLookupAlbums:
    async def test_skips_artist_wrapper_and_non_collections(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[
                {"wrapperType": "artist", "artistId": 5468295, "artistName": "Daft Punk"},
                collection(1, "Discovery", "2001-03-12T08:00:00Z"),
                {"wrapperType": "track", "trackId": 77, "trackName": "One More Time"},
                collection(2, "Random Access Memories", "2013-05-17T07:00:00Z"),
            ],
        )

        result = await itunes_client.lookup_albums("5468295")

        assert result.is_found
        assert [a.title for a in result.value] == ["Random Access Memories", "Discovery"]
        album = result.value[1]
        assert album.release_date == "2001-03-12"
        assert album.cover_url == "https://is1/1/100x100bb.jpg"
        assert album.genres == ["Electronic"]
        assert album.album_type is AlbumType.ALBUM

    async def test_compilation_and_explicitness(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[
                {"wrapperType": "artist", "artistId": 1},
                collection(
                    3,
                    "Greatest Hits",
                    "2010-01-01T08:00:00Z",
                    collectionType="Compilation",
                    collectionExplicitness="explicit",
                ),
            ],
        )

        result = await itunes_client.lookup_albums("1")

        [album] = result.value
        assert album.album_type is AlbumType.COMPILATION
        assert album.explicit_lyrics is True

    async def test_only_artist_wrapper_is_not_found(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[{"wrapperType": "artist", "artistId": 1}],
        )

        result = await itunes_client.lookup_albums("1")

        assert result.outcome is LookupOutcome.NOT_FOUND


class TestITunesReleaseDateSearch:
    async def test_first_matching_collection_wins(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[
                collection(9, "Discovery (Tribute)", "2020-01-01T08:00:00Z", artistName="Cover Band"),
                collection(1, "Discovery", "2001-03-12T08:00:00Z"),
            ],
        )

        release_date = await itunes_client.search_release_date("Daft Punk", "Discovery")

        assert release_date == "2001-03-12"

    async def test_match_is_case_insensitive_both_ways(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[collection(1, "DISCOVERY", "2001-03-12T08:00:00Z")],
        )

        release_date = await itunes_client.search_release_date("daft punk", "Discovery (Deluxe)")

        assert release_date == "2001-03-12"

    async def test_no_match_returns_none(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            return_value=[collection(1, "Homework", "1997-01-20T08:00:00Z")],
        )

        assert await itunes_client.search_release_date("Daft Punk", "Discovery") is None

    async def test_service_error_returns_none(
        self, itunes_client: ITunesClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            itunes_client,
            "_api_request",
            side_effect=ExternalServiceError("iTunes", "/search: HTTP 500", 500),
        )

        assert await itunes_client.search_release_date("Daft Punk", "Discovery") is None


class TestITunesApiRequest:
    async def test_403_counts_as_throttling(self, mocker: MagicMock) -> None:
        limiter = RateLimiter(name="test")
        backoff = mocker.patch.object(
            limiter, "handle_rate_limit_response", AsyncMock(return_value=0.0)
        )
        answers = [
            httpx.Response(403),
            httpx.Response(200, json={"resultCount": 1, "results": [{"artistId": 1}]}),
        ]
        client = ITunesClient(rate_limiter=limiter)
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: answers.pop(0)),
            base_url="https://itunes.apple.com",
        )

        results = await client._api_request("/search", {"term": "x"})

        assert results == [{"artistId": 1}]
        backoff.assert_awaited_once()
        await client.close()

    async def test_invalid_json_raises_service_error(self) -> None:
        client = ITunesClient(rate_limiter=RateLimiter(name="test"))
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
            base_url="https://itunes.apple.com",
        )

        with pytest.raises(ExternalServiceError):
            await client._api_request("/search", {"term": "x"})
        await client.close()
