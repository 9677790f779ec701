"""Provider aggregator: primary/fallback artist resolution plus lookup statistics.

Hey future me - this is the ONE place that knows the provider priority order. Rules of
find_artist():

1. Primary search -> primary discography. Albums found? Return immediately, the fallback
   is never touched.
2. Primary artist but ZERO albums is a weak result: try the fallback anyway.
3. Primary found nothing: fallback search -> fallback discography.
4. Fallback artist without albums is still returned (partial result beats nothing).
5. Nobody found anything, or only a weak primary artist: None, counted as a failure.

The aggregator is built by the composition root and injected, stats live on the
instance. No module-level singleton, so every test gets fresh counters.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from revyou.domain.entities import (
    ArtistSearchResult,
    LookupOutcome,
    ProviderResult,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)
from revyou.domain.ports import IMetadataProvider
from revyou.domain.value_objects import normalize_title

logger = logging.getLogger(__name__)

# Artist used by check_providers(); any artist every catalog surely has works
HEALTH_CHECK_ARTIST = "The Beatles"


@dataclass
class ProviderStats:
    """Process-lifetime lookup counters. Not persisted."""

    total_searches: int = 0
    failures: int = 0
    average_albums: float = 0.0
    successes: dict[ProviderSource, int] = field(default_factory=dict)

    @property
    def total_successes(self) -> int:
        return sum(self.successes.values())

    def record(self, source: ProviderSource | None, album_count: int = 0) -> None:
        """Record one find_artist() outcome. ``None`` means nobody found the artist."""
        self.total_searches += 1
        if source is None:
            self.failures += 1
            return

        self.successes[source] = self.successes.get(source, 0) + 1
        # Running mean over successful searches only
        count = self.total_successes
        self.average_albums += (album_count - self.average_albums) / count

    def snapshot(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total_searches": self.total_searches,
            "failures": self.failures,
            "average_albums": round(self.average_albums, 2),
        }
        for source in ProviderSource:
            data[f"{source.value}_success"] = self.successes.get(source, 0)
        return data

    def reset(self) -> None:
        self.total_searches = 0
        self.failures = 0
        self.average_albums = 0.0
        self.successes.clear()


@dataclass(frozen=True)
class DateMatch:
    """A stored release paired with the release date the fallback provider knows."""

    release: Any
    release_date: str


class ProviderAggregator:
    """Resolves artist names against a primary and a fallback metadata provider."""

    def __init__(
        self,
        primary: IMetadataProvider,
        fallback: IMetadataProvider,
        stats: ProviderStats | None = None,
        batch_delay_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.stats = stats or ProviderStats()
        self._batch_delay = batch_delay_seconds
        self._sleep = sleep

    async def _search(
        self, provider: IMetadataProvider, name: str
    ) -> tuple[UnifiedArtist | None, list[UnifiedAlbum]]:
        """Search + discography on one provider. Logs which way it went wrong."""
        artist_result = await provider.lookup_artist(name)
        if not artist_result.is_found or artist_result.value is None:
            self._log_miss(provider, f"artist '{name}'", artist_result)
            return None, []

        artist = artist_result.value
        albums_result = await provider.lookup_albums(artist.id, artist.name)
        if not albums_result.is_found:
            self._log_miss(provider, f"albums of '{artist.name}' ({artist.id})", albums_result)
        return artist, albums_result.value or []

    @staticmethod
    def _log_miss(
        provider: IMetadataProvider, what: str, result: ProviderResult[Any]
    ) -> None:
        if result.outcome is LookupOutcome.TRANSPORT_ERROR:
            logger.warning(f"{provider.source.value}: {what} unavailable ({result.error})")
        else:
            logger.debug(f"{provider.source.value}: no {what}")

    async def find_artist(self, name: str) -> ArtistSearchResult | None:
        """Resolve an artist name to a unified artist plus discography."""
        primary_artist, primary_albums = await self._search(self.primary, name)
        if primary_artist is not None and primary_albums:
            logger.info(
                f"Found '{name}' on {self.primary.source.value} "
                f"with {len(primary_albums)} albums"
            )
            self.stats.record(self.primary.source, len(primary_albums))
            return ArtistSearchResult(artist=primary_artist, albums=primary_albums)

        if primary_artist is not None:
            logger.info(
                f"'{name}' found on {self.primary.source.value} without albums, "
                f"trying {self.fallback.source.value}"
            )

        fallback_artist, fallback_albums = await self._search(self.fallback, name)
        if fallback_artist is not None:
            logger.info(
                f"Found '{name}' on {self.fallback.source.value} "
                f"with {len(fallback_albums)} albums"
            )
            self.stats.record(self.fallback.source, len(fallback_albums))
            return ArtistSearchResult(artist=fallback_artist, albums=fallback_albums)

        logger.info(f"'{name}' not found on any provider")
        self.stats.record(None)
        return None

    async def find_releases_for_date_update(
        self, artist_name: str, releases: Sequence[Any]
    ) -> list[DateMatch]:
        """Match dateless releases against the fallback provider's discography.

        Args:
            artist_name: Artist whose releases are missing dates
            releases: Objects with a ``title`` attribute (ReleaseModel rows, usually)

        Returns:
            One DateMatch per release whose normalized title matched an album with a date.
            Unmatched releases are left out.
        """
        if not releases:
            return []

        try:
            artist, albums = await self._search(self.fallback, artist_name)
        except Exception as e:
            logger.error(f"Release date lookup for '{artist_name}' failed: {e}")
            return []
        if artist is None:
            return []

        dates: dict[str, str] = {}
        for album in albums:
            key = normalize_title(album.title)
            if album.release_date and key not in dates:
                dates[key] = album.release_date

        matches = []
        for release in releases:
            release_date = dates.get(normalize_title(release.title))
            if release_date:
                matches.append(DateMatch(release=release, release_date=release_date))
        logger.info(
            f"{self.fallback.source.value}: matched dates for {len(matches)}/{len(releases)} "
            f"releases of '{artist_name}'"
        )
        return matches

    async def find_release_date(self, artist_name: str, title: str) -> str | None:
        """Single-title date lookup on the fallback provider."""
        return await self.fallback.search_release_date(artist_name, title)

    async def find_multiple_artists(
        self, names: Sequence[str]
    ) -> dict[str, ArtistSearchResult | None]:
        """Resolve several names one after another, pausing between them."""
        results: dict[str, ArtistSearchResult | None] = {}
        for index, name in enumerate(names):
            if index and self._batch_delay:
                await self._sleep(self._batch_delay)
            results[name] = await self.find_artist(name)

        found = sum(1 for result in results.values() if result is not None)
        logger.info(f"Batch lookup finished: {found} found, {len(results) - found} not found")
        return results

    async def check_providers(self) -> dict[str, bool]:
        """Probe every provider with a well-known artist. True = provider answered with a hit."""
        status: dict[str, bool] = {}
        for provider in (self.primary, self.fallback):
            result = await provider.lookup_artist(HEALTH_CHECK_ARTIST)
            status[provider.source.value] = result.is_found
            if not result.is_found:
                logger.warning(
                    f"Provider check: {provider.source.value} -> {result.outcome.value} "
                    f"({result.error or 'no result'})"
                )
        return status
