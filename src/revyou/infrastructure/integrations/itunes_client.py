"""iTunes Search API client, the fallback metadata provider.

Hey future me - iTunes only gets asked when Deezer has nothing (or an artist without
albums). Its data is sparse: one genre, one artwork size, no UPC/label/contributors.
Releases created from iTunes data get enriched later when Deezer finally knows them
(see CatalogReconciler.update_release_with_additional_data).

The iTunes API is slow and strict (~20 calls/minute), and answers 403 instead of 429
when you overdo it.
"""

import logging
from typing import Any

import httpx

from revyou.config import ITunesSettings
from revyou.domain.entities import (
    ProviderResult,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)
from revyou.domain.exceptions import ExternalServiceError, RateLimitExceededError
from revyou.domain.ports import IMetadataProvider
from revyou.domain.value_objects import map_album_type
from revyou.infrastructure.integrations.discography import dedupe_and_sort
from revyou.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

_THROTTLE_STATUSES = (403, 429)


def _date_part(value: str | None) -> str | None:
    """'2019-05-17T07:00:00Z' -> '2019-05-17'."""
    return value.split("T", 1)[0] if value else None


def _contains_either_way(left: str | None, right: str) -> bool:
    if not left:
        return False
    a, b = left.lower(), right.lower()
    return a in b or b in a


class ITunesClient(IMetadataProvider):
    """HTTP client for the iTunes Search/Lookup API."""

    source = ProviderSource.ITUNES

    def __init__(
        self,
        settings: ITunesSettings | None = None,
        rate_limiter: RateLimiter | None = None,
        user_agent: str = "revyou/0.1",
    ) -> None:
        self._settings = settings or ITunesSettings()
        self._rate_limiter = rate_limiter or RateLimiter.for_itunes()
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _api_request(
        self,
        endpoint: str,
        params: dict[str, Any],
        max_retries: int = 2,
    ) -> list[dict[str, Any]]:
        """Rate-limited GET returning the ``results`` array.

        Raises:
            RateLimitExceededError: Still throttled after max_retries
            ExternalServiceError: Network failure, HTTP error or invalid JSON
        """
        client = await self._get_client()

        for attempt in range(max_retries + 1):
            try:
                async with self._rate_limiter:
                    response = await client.get(endpoint, params=params)
            except httpx.HTTPError as e:
                raise ExternalServiceError("iTunes", f"{endpoint}: {e}") from e

            if response.status_code in _THROTTLE_STATUSES:
                if attempt >= max_retries:
                    raise RateLimitExceededError("iTunes")
                await self._rate_limiter.handle_rate_limit_response()
                continue

            self._rate_limiter.reset_backoff()
            try:
                response.raise_for_status()
                # iTunes sometimes serves JSON as text/javascript, json() doesn't care
                data = response.json()
            except httpx.HTTPStatusError as e:
                raise ExternalServiceError(
                    "iTunes", f"{endpoint}: HTTP {response.status_code}", response.status_code
                ) from e
            except ValueError as e:
                raise ExternalServiceError("iTunes", f"{endpoint}: invalid JSON") from e

            return list(data.get("results") or []) if isinstance(data, dict) else []

        raise RateLimitExceededError("iTunes")

    async def lookup_artist(self, name: str) -> ProviderResult[UnifiedArtist]:
        try:
            results = await self._api_request(
                "/search",
                {
                    "term": name,
                    "entity": "allArtist",
                    "attribute": "allArtistTerm",
                    "limit": 1,
                },
            )
        except ExternalServiceError as e:
            logger.warning(f"iTunes artist search failed for '{name}': {e.message}")
            return ProviderResult.transport_error(e.message)

        if not results or results[0].get("artistId") is None:
            logger.debug(f"iTunes: no artist found for '{name}'")
            return ProviderResult.not_found()

        return ProviderResult.found(self._parse_artist(results[0]))

    async def lookup_albums(
        self, artist_id: str, artist_name: str | None = None
    ) -> ProviderResult[list[UnifiedAlbum]]:
        try:
            results = await self._api_request(
                "/lookup",
                {"id": artist_id, "entity": "album", "limit": self._settings.album_limit},
            )
        except ExternalServiceError as e:
            logger.warning(f"iTunes discography fetch failed for artist {artist_id}: {e.message}")
            return ProviderResult.transport_error(e.message)

        # First result is the artist wrapper itself, the rest are collections
        albums = [
            self._parse_album(item)
            for item in results[1:]
            if item.get("wrapperType", "collection") == "collection"
            and item.get("collectionId") is not None
        ]
        if not albums:
            return ProviderResult.not_found()

        logger.info(f"iTunes: {len(albums)} albums for artist {artist_id}")
        return ProviderResult.found(dedupe_and_sort(albums))

    async def search_release_date(self, artist_name: str, title: str) -> str | None:
        """Find the release date of one title by free-text album search.

        First result whose collection and artist names contain each other (either
        direction, case-insensitive) wins.
        """
        try:
            results = await self._api_request(
                "/search",
                {"term": f"{artist_name} {title}", "entity": "album", "limit": 10},
            )
        except ExternalServiceError as e:
            logger.warning(f"iTunes release date search failed for '{title}': {e.message}")
            return None

        for item in results:
            if _contains_either_way(item.get("collectionName"), title) and _contains_either_way(
                item.get("artistName"), artist_name
            ):
                release_date = _date_part(item.get("releaseDate"))
                if release_date:
                    logger.debug(f"iTunes: release date {release_date} for '{title}'")
                    return release_date
        return None

    def _parse_artist(self, data: dict[str, Any]) -> UnifiedArtist:
        genre = data.get("primaryGenreName")
        return UnifiedArtist(
            id=str(data["artistId"]),
            name=data.get("artistName", ""),
            source=ProviderSource.ITUNES,
            genres=[genre] if genre else [],
        )

    def _parse_album(self, data: dict[str, Any]) -> UnifiedAlbum:
        genre = data.get("primaryGenreName")
        explicitness = data.get("collectionExplicitness")
        return UnifiedAlbum(
            id=str(data["collectionId"]),
            title=data.get("collectionName", ""),
            source=ProviderSource.ITUNES,
            album_type=map_album_type(data.get("collectionType")),
            release_date=_date_part(data.get("releaseDate")),
            track_count=data.get("trackCount"),
            cover_url=data.get("artworkUrl100") or data.get("artworkUrl60"),
            explicit_lyrics=(explicitness == "explicit") if explicitness else None,
            genres=[genre] if genre else [],
        )
