"""Domain entities."""

from revyou.domain.entities.catalog import (
    AlbumType,
    ArtistSearchResult,
    LookupOutcome,
    ProviderResult,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)
from revyou.domain.entities.imports import (
    ArtistImportResult,
    ArtistRef,
    BackfillResult,
    ImportJobStatus,
    ImportLogStatus,
    ImportProgress,
    ImportStats,
)

__all__ = [
    "AlbumType",
    "ArtistImportResult",
    "ArtistRef",
    "ArtistSearchResult",
    "BackfillResult",
    "ImportJobStatus",
    "ImportLogStatus",
    "ImportProgress",
    "ImportStats",
    "LookupOutcome",
    "ProviderResult",
    "ProviderSource",
    "UnifiedAlbum",
    "UnifiedArtist",
]
