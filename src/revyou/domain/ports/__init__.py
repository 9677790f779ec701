"""Domain ports (interfaces) for dependency inversion."""

from collections.abc import Awaitable, Callable

from revyou.domain.entities import ImportProgress
from revyou.domain.ports.metadata_provider import IMetadataProvider
from revyou.domain.ports.playlist_parser import (
    BatchParseResult,
    IPlaylistParser,
    ParsedPlaylist,
    ParsedTrack,
    TrackArtist,
)

# Awaited once per processed artist. Raising from it aborts the run (that's how
# job cancellation unwinds the orchestrator).
ProgressCallback = Callable[[ImportProgress], Awaitable[None]]

__all__ = [
    "BatchParseResult",
    "IMetadataProvider",
    "IPlaylistParser",
    "ParsedPlaylist",
    "ParsedTrack",
    "ProgressCallback",
    "TrackArtist",
]
