"""Catalog reconciler: turns aggregator results into artist/release rows.

Hey future me - this is where the import pipeline touches the database. Per artist:

    aggregator.find_artist(name)
      -> find_or_create_artist (upsert by NAME, additive provider ids)
      -> update_artist_with_music_info (merge metadata, stamp last_updated)
      -> album pass: cached id? skip. release_exists? skip. else create.
         A create that hits the (artist_id, title) constraint means "someone else
         already has this title" -> augment that row with our missing fields, count skip.
      -> replace the discography cache with the album ids we just saw

Every step opens its OWN short session and commits it. Nothing here holds a transaction
across provider HTTP calls, and two jobs working the same artist only ever collide on
the unique constraint, which we treat as an expected outcome.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services.provider_aggregator import ProviderAggregator
from revyou.domain.entities import (
    ArtistImportResult,
    ArtistRef,
    ProviderSource,
    UnifiedAlbum,
    UnifiedArtist,
)
from revyou.domain.exceptions import EntityNotFoundException
from revyou.domain.value_objects import (
    normalize_contributors,
    normalize_genres,
    streaming_link_for,
)
from revyou.infrastructure.persistence import (
    ArtistModel,
    ArtistRepository,
    DiscographyCacheRepository,
    ReleaseModel,
    ReleaseRepository,
    provider_id_attr,
    utc_now,
)

logger = logging.getLogger(__name__)

ARTIST_NOT_FOUND = "Artist not found in any music API"

# Scalar release columns filled from a second provider when still empty
_FILLABLE_FIELDS: tuple[tuple[str, str], ...] = (
    ("cover_url", "cover_url"),
    ("cover_small", "cover_small"),
    ("cover_medium", "cover_medium"),
    ("cover_big", "cover_big"),
    ("cover_xl", "cover_xl"),
    ("duration", "duration"),
    ("upc", "upc"),
    ("label", "label"),
    ("release_date", "release_date"),
    ("total_tracks", "track_count"),
    ("explicit_lyrics", "explicit_lyrics"),
    ("explicit_content_lyrics", "explicit_content_lyrics"),
    ("explicit_content_cover", "explicit_content_cover"),
)


def _is_empty(value: object) -> bool:
    return value is None or value == "" or value == [] or value == {}


class CatalogReconciler:
    """Find-or-create artists and merge provider discographies into releases."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        aggregator: ProviderAggregator,
    ) -> None:
        self._session_factory = session_factory
        self._aggregator = aggregator

    # =========================================================================
    # ARTISTS
    # =========================================================================

    # Hey future me - the `created` flag is what decides full vs incremental album pass.
    # Don't infer "new artist" from last_updated: that column is about metadata freshness.
    async def find_or_create_artist(
        self,
        name: str,
        source: ProviderSource | None = None,
        source_id: str | None = None,
        playlist_artist_id: str | None = None,
    ) -> ArtistRef:
        """Upsert an artist by exact name.

        Provider ids are only ever added: a populated id slot is never overwritten.

        Returns:
            ArtistRef with created=True only when THIS call inserted the row
        """
        async with self._session_factory() as session:
            repo = ArtistRepository(session)
            existing = await repo.get_by_name(name)
            if existing is not None:
                if self._backfill_ids(existing, source, source_id, playlist_artist_id):
                    await session.commit()
                    logger.debug(f"Backfilled provider ids on artist '{name}'")
                return ArtistRef(artist_id=existing.id, created=False)

            artist = ArtistModel(name=name)
            self._backfill_ids(artist, source, source_id, playlist_artist_id)
            try:
                await repo.add(artist)
                await session.commit()
            except IntegrityError:
                # Lost the race against a concurrent job inserting the same name
                await session.rollback()
                raced = True
            else:
                raced = False

        if raced:
            logger.debug(f"Artist '{name}' was created concurrently, reusing it")
            return await self.find_or_create_artist(name, source, source_id, playlist_artist_id)

        logger.info(f"Created artist '{name}'")
        return ArtistRef(artist_id=artist.id, created=True)

    @staticmethod
    def _backfill_ids(
        artist: ArtistModel,
        source: ProviderSource | None,
        source_id: str | None,
        playlist_artist_id: str | None,
    ) -> bool:
        changed = False
        if source is not None and source_id:
            attr = provider_id_attr(source)
            if getattr(artist, attr) is None:
                setattr(artist, attr, source_id)
                changed = True
        if playlist_artist_id and artist.external_playlist_id is None:
            artist.external_playlist_id = playlist_artist_id
            changed = True
        return changed

    async def update_artist_with_music_info(
        self, artist_id: str, artist: UnifiedArtist, source: ProviderSource
    ) -> None:
        """Merge provider metadata into the artist row.

        Only values the provider actually supplied are written, so Deezer's fan count
        survives an iTunes refresh and vice versa. Always stamps last_updated.
        """
        if not artist.id:
            logger.warning(
                f"Skipping metadata merge for artist {artist_id}: "
                f"{source.value} result has no native id"
            )
            return

        async with self._session_factory() as session:
            model = await ArtistRepository(session).get_by_id(artist_id)
            if model is None:
                raise EntityNotFoundException("Artist", artist_id)

            self._backfill_ids(model, source, artist.id, None)
            if artist.genres:
                model.genres = list(artist.genres)
            if artist.popularity is not None:
                model.popularity = artist.popularity
            if artist.followers is not None:
                model.followers = artist.followers
            if artist.image_url:
                model.image_url = artist.image_url
            model.last_updated = utc_now()
            await session.commit()

    # =========================================================================
    # RELEASES
    # =========================================================================

    async def release_exists(
        self,
        external_id: str | None,
        artist_id: str,
        title: str,
        source: ProviderSource,
    ) -> bool:
        """Is this album already stored for the artist?

        Matches by provider id when one is given, by exact title otherwise.
        """
        async with self._session_factory() as session:
            repo = ReleaseRepository(session)
            if external_id:
                found = await repo.get_by_provider_id(artist_id, source, external_id)
            else:
                found = await repo.get_by_title(artist_id, title)
            return found is not None

    def _build_release(
        self, album: UnifiedAlbum, artist_id: str, source: ProviderSource
    ) -> ReleaseModel:
        release = ReleaseModel(
            artist_id=artist_id,
            title=album.title,
            release_type=album.album_type.value,
            release_date=album.release_date,
            cover_url=album.cover_url,
            cover_small=album.cover_small,
            cover_medium=album.cover_medium,
            cover_big=album.cover_big,
            cover_xl=album.cover_xl,
            total_tracks=album.track_count,
            duration=album.duration,
            explicit_lyrics=album.explicit_lyrics,
            explicit_content_lyrics=album.explicit_content_lyrics,
            explicit_content_cover=album.explicit_content_cover,
            genres=normalize_genres(album.genres),
            upc=album.upc,
            label=album.label,
            contributors=normalize_contributors(album.contributors),
            streaming_links=streaming_link_for(source, album.id),
        )
        setattr(release, provider_id_attr(source), album.id)
        return release

    async def create_release_from_album(
        self, album: UnifiedAlbum, artist_id: str, source: ProviderSource
    ) -> bool:
        """Insert a release for the album.

        Returns:
            False when (artist_id, title) is already taken, True when inserted
        """
        release = self._build_release(album, artist_id, source)
        async with self._session_factory() as session:
            try:
                await ReleaseRepository(session).add(release)
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Release '{album.title}' already exists for artist {artist_id}")
                return False

        logger.debug(f"Created release '{album.title}' ({source.value} {album.id})")
        return True

    async def update_release_with_additional_data(
        self, existing: ReleaseModel, album: UnifiedAlbum, source: ProviderSource
    ) -> bool:
        """Fill the release's empty fields from another provider's view of it.

        Populated fields are never overwritten.

        Returns:
            True if anything was written
        """
        async with self._session_factory() as session:
            release = await ReleaseRepository(session).get_by_id(existing.id)
            if release is None:
                raise EntityNotFoundException("Release", existing.id)

            changed = self._merge_missing(release, album, source)
            if changed:
                await session.commit()
                logger.debug(
                    f"Enriched release '{release.title}' with {source.value} data"
                )
            return changed

    @staticmethod
    def _merge_missing(release: ReleaseModel, album: UnifiedAlbum, source: ProviderSource) -> bool:
        changed = False

        id_attr = provider_id_attr(source)
        if getattr(release, id_attr) is None:
            setattr(release, id_attr, album.id)
            changed = True

        # JSON columns: assign new objects, in-place mutation is not change-tracked
        links = dict(release.streaming_links or {})
        new_links = {
            key: url for key, url in streaming_link_for(source, album.id).items() if key not in links
        }
        if new_links:
            release.streaming_links = {**links, **new_links}
            changed = True

        for column, attr in _FILLABLE_FIELDS:
            value = getattr(album, attr)
            if _is_empty(getattr(release, column)) and not _is_empty(value):
                setattr(release, column, value)
                changed = True

        if not release.genres and album.genres:
            release.genres = normalize_genres(album.genres)
            changed = True
        if not release.contributors and album.contributors:
            release.contributors = normalize_contributors(album.contributors)
            changed = True
        return changed

    async def _augment_by_title(
        self, artist_id: str, album: UnifiedAlbum, source: ProviderSource
    ) -> None:
        async with self._session_factory() as session:
            existing = await ReleaseRepository(session).get_by_title(artist_id, album.title)
        if existing is None:
            logger.warning(
                f"Insert of '{album.title}' for artist {artist_id} was rejected "
                "but no release with that title exists"
            )
            return
        await self.update_release_with_additional_data(existing, album, source)

    # =========================================================================
    # DISCOGRAPHY CACHE
    # =========================================================================

    async def get_cached_discography(
        self, artist_id: str, source: ProviderSource
    ) -> list[str] | None:
        """Album ids seen on the last successful fetch, or None if never cached."""
        async with self._session_factory() as session:
            entry = await DiscographyCacheRepository(session).get(artist_id, source)
            return list(entry.album_ids) if entry is not None else None

    async def update_discography_cache(
        self, artist_id: str, source: ProviderSource, album_ids: Iterable[str]
    ) -> None:
        """Replace the cache row for (artist, source) with the given ids."""
        async with self._session_factory() as session:
            await DiscographyCacheRepository(session).replace(artist_id, source, list(album_ids))
            await session.commit()

    # =========================================================================
    # PER-ARTIST PIPELINE
    # =========================================================================

    async def process_artist(
        self, name: str, playlist_artist_id: str | None = None
    ) -> ArtistImportResult:
        """Resolve one artist name and reconcile its discography.

        Never raises: any failure comes back as ``error`` on the result, so one
        broken artist can't take down a whole batch.
        """
        try:
            found = await self._aggregator.find_artist(name)
            if found is None:
                return ArtistImportResult(error=ARTIST_NOT_FOUND)

            source = found.source
            ref = await self.find_or_create_artist(
                name, source, found.artist.id, playlist_artist_id
            )
            await self.update_artist_with_music_info(ref.artist_id, found.artist, source)
            result = await self._reconcile_albums(ref, found.albums, source)
        except Exception as e:
            logger.error(f"Failed to process artist '{name}': {e}", exc_info=True)
            return ArtistImportResult(error=str(e) or e.__class__.__name__)

        logger.info(
            f"Artist '{name}': {result.new_releases} new, "
            f"{result.skipped_releases} skipped ({source.value})"
        )
        return result

    async def _reconcile_albums(
        self, ref: ArtistRef, albums: list[UnifiedAlbum], source: ProviderSource
    ) -> ArtistImportResult:
        result = ArtistImportResult(artist_id=ref.artist_id, created=ref.created)

        cached: set[str] = set()
        if not ref.created:
            cached = set(await self.get_cached_discography(ref.artist_id, source) or [])
            if cached:
                new_count = sum(1 for album in albums if album.id not in cached)
                logger.debug(
                    f"Incremental pass for artist {ref.artist_id}: "
                    f"{new_count} of {len(albums)} albums not cached"
                )

        for album in albums:
            if album.id in cached:
                result.skipped_releases += 1
                continue
            if await self.release_exists(album.id, ref.artist_id, album.title, source):
                result.skipped_releases += 1
                continue
            if await self.create_release_from_album(album, ref.artist_id, source):
                result.new_releases += 1
                continue
            # Same title already stored (other provider or a concurrent job)
            await self._augment_by_title(ref.artist_id, album, source)
            result.skipped_releases += 1

        # An empty list means the fetch failed or found nothing; keep the old snapshot
        if albums:
            await self.update_discography_cache(
                ref.artist_id, source, [album.id for album in albums]
            )
        return result
