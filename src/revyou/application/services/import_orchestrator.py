"""Import orchestrator: drives the reconciler over playlists and the existing catalog.

Hey future me - artists are processed STRICTLY one after another, with a fixed pause in
between (importer.artist_delay_seconds). That pause is the only throttle between artists
and it's per call: two jobs running at once each sleep on their own, so the combined
request rate doubles. Known limitation, the per-request RateLimiter in the clients is the
safety net.

Errors never escape per artist: process_artist() reports them as data and they land in
ImportStats.errors as "<artist>: <message>". The ONLY exceptions that escape a run are
the ones raised by the progress callback (job cancellation) and, on request, playlist
parse failures.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services.catalog_reconciler import CatalogReconciler
from revyou.config import ImporterSettings
from revyou.domain.entities import ArtistImportResult, ImportProgress, ImportStats
from revyou.domain.exceptions import PlaylistParseError
from revyou.domain.ports import IPlaylistParser, ParsedPlaylist, ProgressCallback
from revyou.infrastructure.persistence import ArtistRepository, utc_now

logger = logging.getLogger(__name__)


def parse_failure_message(url: str) -> str:
    return f"Failed to parse playlist: {url}"


def collect_artists(playlists: Iterable[ParsedPlaylist]) -> dict[str, str | None]:
    """Unique artist names (in first-seen order) mapped to the playlist platform's id.

    Structured ``track.artists`` credits win over the flat ``track.artist`` string. The
    first non-empty id seen for a name is kept.
    """
    artists: dict[str, str | None] = {}

    def add(name: str | None, provider_id: str | None = None) -> None:
        cleaned = (name or "").strip()
        if not cleaned:
            return
        if cleaned not in artists or (artists[cleaned] is None and provider_id):
            artists[cleaned] = provider_id

    for playlist in playlists:
        for track in playlist.tracks:
            if track.artists:
                for credit in track.artists:
                    add(credit.name, credit.provider_id)
            else:
                add(track.artist)
        for name in playlist.unique_artists:
            add(name)
    return artists


class ImportOrchestrator:
    """Playlist imports and catalog refresh sweeps."""

    def __init__(
        self,
        reconciler: CatalogReconciler,
        playlist_parser: IPlaylistParser,
        session_factory: async_sessionmaker[AsyncSession],
        settings: ImporterSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._reconciler = reconciler
        self._parser = playlist_parser
        self._session_factory = session_factory
        self._settings = settings or ImporterSettings()
        self._sleep = sleep

    # =========================================================================
    # PLAYLIST IMPORTS
    # =========================================================================

    async def import_from_playlist(
        self,
        url: str,
        on_progress: ProgressCallback | None = None,
        raise_on_parse_failure: bool = False,
    ) -> ImportStats:
        """Import every artist credited on one playlist.

        Args:
            url: Playlist URL handed to the parser
            on_progress: Awaited after every artist (and once before the first)
            raise_on_parse_failure: Raise PlaylistParseError instead of reporting it in
                stats.errors (the background job wants a failed job, not an empty success)
        """
        try:
            playlist = await self._parser.parse_playlist(url)
        except Exception as e:
            logger.error(f"Playlist parse failed for {url}: {e}")
            if raise_on_parse_failure:
                if isinstance(e, PlaylistParseError):
                    raise
                raise PlaylistParseError(url, f"{parse_failure_message(url)} ({e})") from e
            return ImportStats(errors=[parse_failure_message(url)])

        artists = collect_artists([playlist])
        if not artists:
            logger.warning(f"Playlist {url} has no artists")
            if raise_on_parse_failure:
                raise PlaylistParseError(url, f"No artists found in playlist: {url}")
            return ImportStats(errors=[f"No artists found in playlist: {url}"])

        logger.info(f"Importing {len(artists)} artists from playlist '{playlist.name}'")
        return await self._run(artists.items(), on_progress, refresh=False)

    async def import_from_multiple_playlists(
        self, urls: list[str], on_progress: ProgressCallback | None = None
    ) -> ImportStats:
        """Import the union of artists over several playlists (each artist resolved once)."""
        try:
            batch = await self._parser.parse_multiple_playlists(urls)
        except Exception as e:
            logger.error(f"Batch playlist parse failed: {e}")
            return ImportStats(errors=[parse_failure_message(url) for url in urls])

        parse_errors = [parse_failure_message(url) for url in batch.failed]
        artists = collect_artists(batch.successful)
        logger.info(
            f"Parsed {len(batch.successful)}/{len(urls)} playlists, "
            f"{len(artists)} unique artists"
        )

        stats = await self._run(artists.items(), on_progress, refresh=False)
        stats.errors[:0] = parse_errors
        return stats

    # =========================================================================
    # REFRESH SWEEPS
    # =========================================================================

    async def update_all_artists(self, on_progress: ProgressCallback | None = None) -> ImportStats:
        """Re-resolve every artist that has a Deezer or iTunes id."""
        return await self._refresh(updated_before=None, on_progress=on_progress)

    async def update_existing_artists(
        self, on_progress: ProgressCallback | None = None
    ) -> ImportStats:
        """Re-resolve artists not updated within importer.stale_after_hours."""
        cutoff = utc_now() - timedelta(hours=self._settings.stale_after_hours)
        return await self._refresh(updated_before=cutoff, on_progress=on_progress)

    async def _refresh(
        self, updated_before: datetime | None, on_progress: ProgressCallback | None
    ) -> ImportStats:
        async with self._session_factory() as session:
            artists = await ArtistRepository(session).list_with_provider_id(updated_before)
            names = [(artist.name, artist.external_playlist_id) for artist in artists]

        logger.info(f"Refreshing {len(names)} artists")
        return await self._run(names, on_progress, refresh=True)

    # =========================================================================
    # ARTIST LOOP
    # =========================================================================

    async def _run(
        self,
        artists: Iterable[tuple[str, str | None]],
        on_progress: ProgressCallback | None,
        refresh: bool,
    ) -> ImportStats:
        items = list(artists)
        stats = ImportStats(total_artists=len(items))
        await self._report(stats, on_progress, current=None)

        for index, (name, playlist_artist_id) in enumerate(items):
            if index and self._settings.artist_delay_seconds:
                await self._sleep(self._settings.artist_delay_seconds)

            result = await self._reconciler.process_artist(name, playlist_artist_id)
            self._apply(stats, name, result, refresh)
            stats.processed_artists += 1

            # Outside any error handling: a raising callback (cancel) must abort the run
            await self._report(stats, on_progress, current=name)

        logger.info(
            f"Run finished: {stats.new_artists} new artists, {stats.updated_artists} updated, "
            f"{stats.new_releases} new releases, {stats.skipped_releases} skipped, "
            f"{len(stats.errors)} errors"
        )
        return stats

    @staticmethod
    def _apply(stats: ImportStats, name: str, result: ArtistImportResult, refresh: bool) -> None:
        if result.error:
            stats.errors.append(f"{name}: {result.error}")
            return

        stats.new_releases += result.new_releases
        stats.skipped_releases += result.skipped_releases
        # An artist only counts once it brought at least one new release, even when its
        # row was created in this run (cache-hit re-runs must not inflate the number)
        if result.new_releases > 0:
            if refresh:
                stats.updated_artists += 1
            else:
                stats.new_artists += 1

    @staticmethod
    async def _report(
        stats: ImportStats, on_progress: ProgressCallback | None, current: str | None
    ) -> None:
        if on_progress is None:
            return
        await on_progress(
            ImportProgress(
                total_artists=stats.total_artists,
                processed_artists=stats.processed_artists,
                new_releases=stats.new_releases,
                skipped_releases=stats.skipped_releases,
                error_count=len(stats.errors),
                current_artist=current,
            )
        )
