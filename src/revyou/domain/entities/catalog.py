"""Provider-agnostic catalog shapes.

Hey future me - these are the "unified shape" every metadata provider client maps its JSON
into. They are transient: produced per search, never stored as-is. The reconciler copies
their fields onto ArtistModel/ReleaseModel rows.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ProviderSource(str, Enum):
    """Which external metadata provider produced a result."""

    DEEZER = "deezer"
    ITUNES = "itunes"


class AlbumType(str, Enum):
    """Release type after provider-specific mapping."""

    ALBUM = "album"
    SINGLE = "single"
    COMPILATION = "compilation"


@dataclass
class UnifiedArtist:
    """Artist as returned by one provider's search endpoint."""

    id: str
    name: str
    source: ProviderSource
    image_url: str | None = None
    genres: list[str] = field(default_factory=list)
    popularity: int | None = None
    followers: int | None = None


# Listen, genres and contributors stay RAW here (strings, dicts, whatever the provider
# sent). normalize_genres/normalize_contributors turn them into the stored shape when the
# release row is written, so the clients don't need to agree on a format.
@dataclass
class UnifiedAlbum:
    """One discography entry from a provider."""

    id: str
    title: str
    source: ProviderSource
    album_type: AlbumType = AlbumType.ALBUM
    release_date: str | None = None  # ISO "YYYY-MM-DD" (sometimes just "YYYY")
    track_count: int | None = None
    cover_url: str | None = None
    cover_small: str | None = None
    cover_medium: str | None = None
    cover_big: str | None = None
    cover_xl: str | None = None
    duration: int | None = None  # seconds
    explicit_lyrics: bool | None = None
    explicit_content_lyrics: int | None = None  # Deezer 0-4 scale
    explicit_content_cover: int | None = None  # Deezer 0-4 scale
    genres: list[Any] = field(default_factory=list)
    upc: str | None = None
    label: str | None = None
    contributors: list[Any] = field(default_factory=list)


@dataclass
class ArtistSearchResult:
    """Aggregator output: the matched artist plus whatever discography we found."""

    artist: UnifiedArtist
    albums: list[UnifiedAlbum] = field(default_factory=list)

    @property
    def source(self) -> ProviderSource:
        return self.artist.source


class LookupOutcome(str, Enum):
    """Why a provider call produced (or didn't produce) a value."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"


# Hey future me - the aggregator collapses NOT_FOUND and TRANSPORT_ERROR into "try the next
# provider" anyway, but keeping them apart means the logs tell you whether Deezer had nothing
# or Deezer was down. Don't go back to returning bare None from the lookup_* methods!
@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Outcome of a single provider lookup."""

    outcome: LookupOutcome
    value: T | None = None
    error: str | None = None

    @classmethod
    def found(cls, value: T) -> "ProviderResult[T]":
        return cls(LookupOutcome.FOUND, value=value)

    @classmethod
    def not_found(cls) -> "ProviderResult[T]":
        return cls(LookupOutcome.NOT_FOUND)

    @classmethod
    def transport_error(cls, error: str) -> "ProviderResult[T]":
        return cls(LookupOutcome.TRANSPORT_ERROR, error=error)

    @property
    def is_found(self) -> bool:
        return self.outcome is LookupOutcome.FOUND
