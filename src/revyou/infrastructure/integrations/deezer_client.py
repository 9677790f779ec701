"""Deezer HTTP client, the primary metadata provider of the import pipeline.

Hey future me - Deezer's public API works WITHOUT authentication, which is why it's
the primary provider. It also gives us the richest album data (4 cover sizes,
explicit-content scale, UPC, label, contributors) but only from the /album/{id}
detail endpoint, so a discography fetch is:

1. GET /artist/{id}/albums          (summary list)
2. GET /search/album?q=artist:"X"   (catches releases the artist endpoint misses)
3. GET /album/{id} per album        (detail enrichment, bounded fan-out)

Step 3 is best effort. A failing detail call degrades THAT album to summary fields
and never fails the whole discography.

Rate limits: ~50 requests per 5 seconds per IP. Deezer reports throttling as a 200
response with {"error": {"code": 4}} (sometimes also a real 429), both go through
the RateLimiter backoff.
"""

import asyncio
import logging
from typing import Any

import httpx

from revyou.config import DeezerSettings
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

# Deezer error payload code for "quota exceeded"
RATE_LIMIT_ERROR_CODE = 4


class DeezerClient(IMetadataProvider):
    """HTTP client for Deezer's public catalog API.

    Usage:
        client = DeezerClient(settings.deezer, rate_limiter=RateLimiter.for_deezer())
        result = await client.lookup_artist("Daft Punk")
        albums = await client.lookup_albums(result.value.id, result.value.name)
        await client.close()
    """

    source = ProviderSource.DEEZER

    def __init__(
        self,
        settings: DeezerSettings | None = None,
        rate_limiter: RateLimiter | None = None,
        user_agent: str = "revyou/0.1",
    ) -> None:
        self._settings = settings or DeezerSettings()
        self._rate_limiter = rate_limiter or RateLimiter.for_deezer()
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "application/json",
                },
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Hey future me - ALL Deezer calls go through here. It returns the decoded JSON body
    # and raises ExternalServiceError for everything that went wrong (network, non-2xx,
    # garbage JSON, Deezer error payloads). The public lookup_* methods catch that and
    # turn it into a transport_error result, nothing above this client ever sees httpx.
    async def _api_request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        max_retries: int = 3,
    ) -> dict[str, Any]:
        """Make a rate-limited GET request with retry on rate limiting.

        Args:
            endpoint: API path (e.g. "/search/artist")
            params: Query parameters
            max_retries: Retries after rate limit answers

        Returns:
            Decoded JSON object

        Raises:
            RateLimitExceededError: Still throttled after max_retries
            ExternalServiceError: Network failure, HTTP error or Deezer error payload
        """
        client = await self._get_client()

        for attempt in range(max_retries + 1):
            try:
                async with self._rate_limiter:
                    response = await client.get(endpoint, params=params)
            except httpx.HTTPError as e:
                raise ExternalServiceError("Deezer", f"{endpoint}: {e}") from e

            if response.status_code == 429:
                if attempt >= max_retries:
                    raise RateLimitExceededError("Deezer")
                retry_after = response.headers.get("Retry-After")
                await self._rate_limiter.handle_rate_limit_response(
                    float(retry_after) if retry_after and retry_after.isdigit() else None
                )
                continue

            try:
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                raise ExternalServiceError(
                    "Deezer", f"{endpoint}: HTTP {response.status_code}", response.status_code
                ) from e
            except ValueError as e:
                raise ExternalServiceError("Deezer", f"{endpoint}: invalid JSON") from e

            error = data.get("error") if isinstance(data, dict) else None
            if error:
                code = error.get("code") if isinstance(error, dict) else None
                if code == RATE_LIMIT_ERROR_CODE:
                    if attempt >= max_retries:
                        logger.error(
                            f"Deezer API rate limited after {max_retries} retries: {endpoint}"
                        )
                        raise RateLimitExceededError("Deezer")
                    wait_time = await self._rate_limiter.handle_rate_limit_response()
                    logger.warning(
                        f"Deezer rate limit (attempt {attempt + 1}/{max_retries}): "
                        f"waited {wait_time:.1f}s, retrying {endpoint}"
                    )
                    continue
                self._rate_limiter.reset_backoff()
                message = error.get("message") if isinstance(error, dict) else error
                raise ExternalServiceError("Deezer", f"{endpoint}: {message} (code {code})")

            self._rate_limiter.reset_backoff()
            if not isinstance(data, dict):
                raise ExternalServiceError("Deezer", f"{endpoint}: unexpected payload")
            return data

        raise RateLimitExceededError("Deezer")

    # =========================================================================
    # IMetadataProvider
    # =========================================================================

    async def lookup_artist(self, name: str) -> ProviderResult[UnifiedArtist]:
        """Search for an artist and map the first hit."""
        try:
            data = await self._api_request("/search/artist", params={"q": name, "limit": 1})
        except ExternalServiceError as e:
            logger.warning(f"Deezer artist search failed for '{name}': {e.message}")
            return ProviderResult.transport_error(e.message)

        items = data.get("data") or []
        if not items:
            logger.debug(f"Deezer: no artist found for '{name}'")
            return ProviderResult.not_found()

        return ProviderResult.found(self._parse_artist(items[0]))

    async def lookup_albums(
        self, artist_id: str, artist_name: str | None = None
    ) -> ProviderResult[list[UnifiedAlbum]]:
        """Fetch and enrich the artist's discography.

        Args:
            artist_id: Deezer artist id
            artist_name: Enables the extra /search/album pass when given
        """
        try:
            data = await self._api_request(
                f"/artist/{artist_id}/albums",
                params={"limit": self._settings.album_limit},
            )
        except ExternalServiceError as e:
            logger.warning(f"Deezer discography fetch failed for artist {artist_id}: {e.message}")
            return ProviderResult.transport_error(e.message)

        summaries = [item for item in data.get("data") or [] if item.get("id") is not None]
        if artist_name and self._settings.album_search_limit:
            seen = {str(item["id"]) for item in summaries}
            summaries.extend(await self._search_extra_albums(artist_id, artist_name, seen))

        if not summaries:
            return ProviderResult.not_found()

        albums = await self._enrich_albums(summaries)
        logger.info(f"Deezer: {len(albums)} albums for artist {artist_id}")
        return ProviderResult.found(dedupe_and_sort(albums))

    async def _search_extra_albums(
        self, artist_id: str, artist_name: str, seen: set[str]
    ) -> list[dict[str, Any]]:
        """Album search by artist name, restricted to albums credited to artist_id.

        The /artist/{id}/albums listing lags behind for fresh releases, the search
        index usually has them already. Failures only cost us the extras.
        """
        try:
            data = await self._api_request(
                "/search/album",
                params={
                    "q": f'artist:"{artist_name}"',
                    "limit": self._settings.album_search_limit,
                },
            )
        except ExternalServiceError as e:
            logger.debug(f"Deezer extra album search failed for '{artist_name}': {e.message}")
            return []

        extras = []
        for item in data.get("data") or []:
            album_id = item.get("id")
            credited = str((item.get("artist") or {}).get("id"))
            if album_id is None or credited != str(artist_id) or str(album_id) in seen:
                continue
            seen.add(str(album_id))
            extras.append(item)
        if extras:
            logger.debug(f"Deezer: {len(extras)} extra albums via search for '{artist_name}'")
        return extras

    async def _enrich_albums(self, summaries: list[dict[str, Any]]) -> list[UnifiedAlbum]:
        """Fetch /album/{id} for every summary with at most detail_concurrency in flight."""
        semaphore = asyncio.Semaphore(self._settings.detail_concurrency)

        async def enrich(summary: dict[str, Any]) -> UnifiedAlbum:
            async with semaphore:
                try:
                    detail = await self._api_request(f"/album/{summary['id']}")
                except ExternalServiceError as e:
                    logger.debug(
                        f"Deezer: detail for album {summary['id']} unavailable, "
                        f"using summary ({e.message})"
                    )
                    detail = None
            return self._parse_album(summary, detail)

        return list(await asyncio.gather(*(enrich(summary) for summary in summaries)))

    # =========================================================================
    # PARSING
    # =========================================================================

    def _parse_artist(self, data: dict[str, Any]) -> UnifiedArtist:
        """Map a Deezer artist object. Deezer has no artist genres and one fan count."""
        return UnifiedArtist(
            id=str(data["id"]),
            name=data.get("name", ""),
            source=ProviderSource.DEEZER,
            image_url=data.get("picture_medium") or data.get("picture"),
            genres=[],
            popularity=data.get("nb_fan"),
            followers=data.get("nb_fan"),
        )

    def _parse_album(
        self, summary: dict[str, Any], detail: dict[str, Any] | None = None
    ) -> UnifiedAlbum:
        """Map a summary album, overlaying detail fields when we have them.

        Hey future me - covers, title, date and type come from the summary (the listing
        has them), everything in the second block exists ONLY in the detail response.
        """
        album = UnifiedAlbum(
            id=str(summary["id"]),
            title=summary.get("title", ""),
            source=ProviderSource.DEEZER,
            album_type=map_album_type(summary.get("record_type")),
            release_date=summary.get("release_date") or None,
            track_count=summary.get("nb_tracks"),
            cover_url=summary.get("cover_medium") or summary.get("cover"),
            cover_small=summary.get("cover_small"),
            cover_medium=summary.get("cover_medium"),
            cover_big=summary.get("cover_big"),
            cover_xl=summary.get("cover_xl"),
        )
        if detail is None:
            return album

        genres = detail.get("genres")
        album.duration = detail.get("duration")
        album.explicit_lyrics = bool(detail.get("explicit_lyrics", False))
        album.explicit_content_lyrics = detail.get("explicit_content_lyrics") or 0
        album.explicit_content_cover = detail.get("explicit_content_cover") or 0
        album.genres = genres.get("data", []) if isinstance(genres, dict) else []
        album.upc = detail.get("upc")
        album.label = detail.get("label")
        album.contributors = detail.get("contributors") or []
        album.release_date = album.release_date or detail.get("release_date") or None
        album.track_count = album.track_count or detail.get("nb_tracks")
        return album
