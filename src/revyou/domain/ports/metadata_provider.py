"""Metadata provider port (Deezer, iTunes, ...)."""

from abc import ABC, abstractmethod

from revyou.domain.entities import (
    ProviderResult,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)


# Hey future me, every provider client implements BOTH layers: the lookup_* methods return
# an explicit ProviderResult (found / not_found / transport_error) for logging, the
# search_artist/get_artist_albums wrappers collapse that into None/[] for callers that only
# care "did we get something". Neither layer raises on HTTP trouble.
class IMetadataProvider(ABC):
    """Artist search + discography retrieval against one external catalog."""

    source: ProviderSource

    @abstractmethod
    async def lookup_artist(self, name: str) -> ProviderResult[UnifiedArtist]:
        """Search the provider for an artist name and map the best hit."""

    @abstractmethod
    async def lookup_albums(
        self, artist_id: str, artist_name: str | None = None
    ) -> ProviderResult[list[UnifiedAlbum]]:
        """Fetch the full discography for a provider-native artist id."""

    async def search_artist(self, name: str) -> UnifiedArtist | None:
        """Best-ranked artist for the name, or None (no hit or transport error)."""
        result = await self.lookup_artist(name)
        return result.value if result.is_found else None

    async def get_artist_albums(
        self, artist_id: str, artist_name: str | None = None
    ) -> list[UnifiedAlbum]:
        """Deduplicated discography sorted newest first, or [] on any failure."""
        result = await self.lookup_albums(artist_id, artist_name)
        return result.value or []

    async def search_release_date(self, artist_name: str, title: str) -> str | None:
        """Look up a single release date. Providers without a cheap way return None."""
        return None

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
