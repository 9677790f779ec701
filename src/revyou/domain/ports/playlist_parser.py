"""Playlist parser port.

Listen future me, the actual scraping/HTML heuristics live outside this package. All the
import pipeline needs is this contract: give me a URL, get back tracks with artist names
(and sometimes the playlist platform's own artist id).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from revyou.domain.exceptions import PlaylistParseError


@dataclass(frozen=True)
class TrackArtist:
    """Structured artist credit on a track."""

    name: str
    provider_id: str | None = None


@dataclass
class ParsedTrack:
    """One track. Either ``artists`` (structured) or ``artist`` (flat string) is filled."""

    title: str
    artist: str | None = None
    artists: list[TrackArtist] = field(default_factory=list)


@dataclass
class ParsedPlaylist:
    """Result of parsing one playlist page."""

    url: str
    name: str
    tracks: list[ParsedTrack] = field(default_factory=list)
    unique_artists: list[str] = field(default_factory=list)


@dataclass
class BatchParseResult:
    """Result of parsing several playlists; failed URLs are listed, not raised."""

    successful: list[ParsedPlaylist] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class IPlaylistParser(ABC):
    """Turns a playlist URL into tracks and artist names."""

    @abstractmethod
    async def parse_playlist(self, url: str) -> ParsedPlaylist:
        """Parse one playlist.

        Raises:
            PlaylistParseError: If nothing usable could be extracted.
        """

    async def parse_multiple_playlists(self, urls: list[str]) -> BatchParseResult:
        """Parse several playlists; a failing URL lands in ``failed``."""
        result = BatchParseResult()
        for url in urls:
            try:
                result.successful.append(await self.parse_playlist(url))
            except PlaylistParseError:
                result.failed.append(url)
        return result
