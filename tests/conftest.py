"""Shared fixtures for the revyou test suite.

Hey future me - persistence-backed tests run against a REAL SQLite file in tmp_path,
not mocks: the (artist_id, title) unique constraint and the JSON columns are exactly the
things we want exercised. Providers and the playlist parser are in-memory fakes that
count their calls, so fallback ordering can be asserted.
"""

from collections.abc import AsyncGenerator, Iterable
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services import (
    CatalogReconciler,
    ImportOrchestrator,
    ProviderAggregator,
)
from revyou.config import DatabaseSettings, ImporterSettings
from revyou.domain.entities import (
    ProviderResult,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)
from revyou.domain.exceptions import PlaylistParseError
from revyou.domain.ports import (
    IMetadataProvider,
    IPlaylistParser,
    ParsedPlaylist,
    ParsedTrack,
)
from revyou.infrastructure.persistence import Database


class FakeProvider(IMetadataProvider):
    """In-memory metadata provider with call recording."""

    def __init__(self, source: ProviderSource) -> None:
        self.source = source
        self.artists: dict[str, UnifiedArtist] = {}
        self.albums: dict[str, list[UnifiedAlbum]] = {}
        self.release_dates: dict[str, str] = {}
        self.transport_error: str | None = None
        self.artist_calls: list[str] = []
        self.album_calls: list[str] = []
        self.closed = False

    def add_artist(
        self,
        name: str,
        albums: Iterable[UnifiedAlbum] = (),
        artist_id: str | None = None,
        **fields: object,
    ) -> UnifiedArtist:
        artist = UnifiedArtist(
            id=artist_id or f"{self.source.value}-{name}",
            name=name,
            source=self.source,
            **fields,  # type: ignore[arg-type]
        )
        self.artists[name] = artist
        self.albums[artist.id] = list(albums)
        return artist

    def album(self, album_id: str, title: str, **fields: object) -> UnifiedAlbum:
        return UnifiedAlbum(id=album_id, title=title, source=self.source, **fields)  # type: ignore[arg-type]

    async def lookup_artist(self, name: str) -> ProviderResult[UnifiedArtist]:
        self.artist_calls.append(name)
        if self.transport_error:
            return ProviderResult.transport_error(self.transport_error)
        artist = self.artists.get(name)
        return ProviderResult.found(artist) if artist else ProviderResult.not_found()

    async def lookup_albums(
        self, artist_id: str, artist_name: str | None = None
    ) -> ProviderResult[list[UnifiedAlbum]]:
        self.album_calls.append(artist_id)
        if self.transport_error:
            return ProviderResult.transport_error(self.transport_error)
        albums = self.albums.get(artist_id)
        return ProviderResult.found(list(albums)) if albums else ProviderResult.not_found()

    async def search_release_date(self, artist_name: str, title: str) -> str | None:
        return self.release_dates.get(title)

    async def close(self) -> None:
        self.closed = True


class FakePlaylistParser(IPlaylistParser):
    """Returns registered playlists, raises PlaylistParseError for anything else."""

    def __init__(self) -> None:
        self.playlists: dict[str, ParsedPlaylist] = {}

    def add(self, url: str, *artists: str, name: str = "Test Playlist") -> ParsedPlaylist:
        playlist = ParsedPlaylist(
            url=url,
            name=name,
            tracks=[ParsedTrack(title=f"Song {i}", artist=a) for i, a in enumerate(artists)],
        )
        self.playlists[url] = playlist
        return playlist

    async def parse_playlist(self, url: str) -> ParsedPlaylist:
        if url not in self.playlists:
            raise PlaylistParseError(url)
        return self.playlists[url]


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database file with all tables."""
    db = Database(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"))
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database: Database) -> async_sessionmaker[AsyncSession]:
    return database.session_factory


@pytest.fixture
def deezer() -> FakeProvider:
    return FakeProvider(ProviderSource.DEEZER)


@pytest.fixture
def itunes() -> FakeProvider:
    return FakeProvider(ProviderSource.ITUNES)


@pytest.fixture
def aggregator(deezer: FakeProvider, itunes: FakeProvider) -> ProviderAggregator:
    return ProviderAggregator(deezer, itunes, batch_delay_seconds=0)


@pytest.fixture
def reconciler(
    session_factory: async_sessionmaker[AsyncSession], aggregator: ProviderAggregator
) -> CatalogReconciler:
    return CatalogReconciler(session_factory, aggregator)


@pytest.fixture
def playlist_parser() -> FakePlaylistParser:
    return FakePlaylistParser()


@pytest.fixture
def importer_settings() -> ImporterSettings:
    return ImporterSettings(artist_delay_seconds=0, playlist_delay_seconds=0)


@pytest.fixture
def orchestrator(
    reconciler: CatalogReconciler,
    playlist_parser: FakePlaylistParser,
    session_factory: async_sessionmaker[AsyncSession],
    importer_settings: ImporterSettings,
) -> ImportOrchestrator:
    return ImportOrchestrator(reconciler, playlist_parser, session_factory, importer_settings)
