"""Tests for CatalogReconciler against a real SQLite database.

Hey future me - these cover the invariants the whole import pipeline leans on:
one release per (artist, title), fill-only-empty merges, and the incremental pass that
skips cached album ids without touching release_exists().
"""

from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import func, select

from revyou.application.services import ARTIST_NOT_FOUND, CatalogReconciler
from revyou.domain.entities import ProviderSource, UnifiedArtist
from revyou.infrastructure.persistence import (
    ArtistModel,
    ArtistRepository,
    DiscographyCacheRepository,
    ReleaseModel,
    ReleaseRepository,
)


async def _releases(session_factory, artist_id: str) -> list[ReleaseModel]:
    async with session_factory() as session:
        return await ReleaseRepository(session).list_for_artist(artist_id)


async def _release_count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(ReleaseModel.id)))).scalar_one()


class TestProcessArtist:
    async def test_end_to_end_single_album(self, reconciler, session_factory, deezer) -> None:
        deezer.add_artist("X", [deezer.album("1", "A")], artist_id="dz-x")

        result = await reconciler.process_artist("X")

        assert result.error is None
        assert result.new_releases == 1
        assert result.skipped_releases == 0
        assert result.created is True

        async with session_factory() as session:
            artist = await ArtistRepository(session).get_by_name("X")
            assert artist is not None
            assert artist.deezer_id == "dz-x"
            assert artist.last_updated is not None
            cache = await DiscographyCacheRepository(session).get(
                artist.id, ProviderSource.DEEZER
            )
        assert cache is not None
        assert cache.album_ids == ["1"]

        releases = await _releases(session_factory, artist.id)
        assert [(r.title, r.artist_id, r.deezer_id) for r in releases] == [
            ("A", artist.id, "1")
        ]
        assert releases[0].streaming_links == {"deezer": "https://www.deezer.com/album/1"}

    async def test_second_run_creates_no_duplicates(self, reconciler, session_factory, deezer) -> None:
        deezer.add_artist("X", [deezer.album("1", "A"), deezer.album("2", "B")])

        first = await reconciler.process_artist("X")
        second = await reconciler.process_artist("X")

        assert first.new_releases == 2
        assert second.new_releases == 0
        assert second.skipped_releases == first.new_releases
        assert second.created is False
        assert await _release_count(session_factory) == 2

    async def test_incremental_pass_skips_cached_ids_without_lookup(
        self, reconciler, deezer, mocker
    ) -> None:
        artist = deezer.add_artist("X", [deezer.album("1", "A"), deezer.album("2", "B")])
        await reconciler.process_artist("X")

        deezer.albums[artist.id].append(deezer.album("3", "C"))
        spy = mocker.spy(reconciler, "release_exists")

        result = await reconciler.process_artist("X")

        assert result.new_releases == 1
        assert result.skipped_releases == 2
        assert spy.call_count == 1
        assert spy.call_args.args[0] == "3"

    async def test_title_clash_from_other_provider_augments_existing(
        self, reconciler, session_factory, deezer, itunes
    ) -> None:
        deezer.add_artist("X", [deezer.album("1", "A")])
        first = await reconciler.process_artist("X")

        # Deezer goes down, iTunes knows the same record under its own id
        deezer.transport_error = "Deezer API error: 503"
        itunes.add_artist("X", [itunes.album("9", "A", label="Some Label")])
        second = await reconciler.process_artist("X")

        assert second.error is None
        assert second.new_releases == 0
        assert second.skipped_releases == 1
        releases = await _releases(session_factory, first.artist_id)
        assert len(releases) == 1
        assert releases[0].deezer_id == "1"
        assert releases[0].itunes_id == "9"
        assert releases[0].label == "Some Label"
        assert set(releases[0].streaming_links) == {"deezer", "itunes", "appleMusic"}

    async def test_genres_are_normalized_on_insert(self, reconciler, session_factory, deezer) -> None:
        deezer.add_artist(
            "X",
            [
                deezer.album("1", "A", genres=["Rock", "Pop"]),
                deezer.album("2", "B", genres=[{"name": "Jazz", "id": 12}]),
                deezer.album("3", "C", genres=[None]),
            ],
        )
        result = await reconciler.process_artist("X")

        genres = {r.title: r.genres for r in await _releases(session_factory, result.artist_id)}
        assert genres == {
            "A": [{"name": "Rock"}, {"name": "Pop"}],
            "B": [{"name": "Jazz", "id": 12}],
            "C": [{"name": "Unknown"}],
        }

    async def test_unknown_artist_is_an_error_not_an_exception(self, reconciler) -> None:
        result = await reconciler.process_artist("Nobody")

        assert result.error == ARTIST_NOT_FOUND
        assert result.new_releases == 0

    async def test_primary_artist_without_albums_and_no_fallback_hit(
        self, reconciler, session_factory, deezer
    ) -> None:
        deezer.add_artist("Weak", [])

        result = await reconciler.process_artist("Weak")

        assert result.error == ARTIST_NOT_FOUND
        assert result.artist_id is None
        async with session_factory() as session:
            assert await ArtistRepository(session).get_by_name("Weak") is None

    async def test_unexpected_exception_becomes_error(self, session_factory) -> None:
        aggregator = MagicMock()
        aggregator.find_artist = AsyncMock(side_effect=RuntimeError("boom"))
        reconciler = CatalogReconciler(session_factory, aggregator)

        result = await reconciler.process_artist("X")

        assert result.error == "boom"

    async def test_empty_discography_keeps_old_cache(self, reconciler, deezer) -> None:
        deezer.add_artist("X", [deezer.album("1", "A")])
        first = await reconciler.process_artist("X")

        deezer.albums[deezer.artists["X"].id] = []
        await reconciler.process_artist("X")

        cached = await reconciler.get_cached_discography(first.artist_id, ProviderSource.DEEZER)
        assert cached == ["1"]


class TestFindOrCreateArtist:
    async def test_created_flag(self, reconciler) -> None:
        first = await reconciler.find_or_create_artist("Solo")
        second = await reconciler.find_or_create_artist("Solo")

        assert first.created is True
        assert second.created is False
        assert first.artist_id == second.artist_id

    async def test_provider_ids_are_only_added(self, reconciler, session_factory) -> None:
        ref = await reconciler.find_or_create_artist("Solo", ProviderSource.DEEZER, "d1")
        await reconciler.find_or_create_artist("Solo", ProviderSource.DEEZER, "d2")
        await reconciler.find_or_create_artist(
            "Solo", ProviderSource.ITUNES, "i1", playlist_artist_id="pl-1"
        )

        async with session_factory() as session:
            artist = await ArtistRepository(session).get_by_id(ref.artist_id)
        assert artist is not None
        assert artist.deezer_id == "d1"
        assert artist.itunes_id == "i1"
        assert artist.external_playlist_id == "pl-1"


class TestArtistMetadata:
    async def test_deezer_metadata_is_merged(self, reconciler, session_factory) -> None:
        ref = await reconciler.find_or_create_artist("Solo")
        info = UnifiedArtist(
            id="d1",
            name="Solo",
            source=ProviderSource.DEEZER,
            image_url="https://img/solo.jpg",
            popularity=1200,
            followers=1200,
        )

        await reconciler.update_artist_with_music_info(ref.artist_id, info, ProviderSource.DEEZER)

        async with session_factory() as session:
            artist = await session.get(ArtistModel, ref.artist_id)
        assert artist.deezer_id == "d1"
        assert artist.followers == 1200
        assert artist.image_url == "https://img/solo.jpg"
        assert artist.last_updated is not None

    async def test_itunes_refresh_keeps_deezer_numbers(self, reconciler, session_factory) -> None:
        ref = await reconciler.find_or_create_artist("Solo")
        await reconciler.update_artist_with_music_info(
            ref.artist_id,
            UnifiedArtist(id="d1", name="Solo", source=ProviderSource.DEEZER, followers=50),
            ProviderSource.DEEZER,
        )
        await reconciler.update_artist_with_music_info(
            ref.artist_id,
            UnifiedArtist(id="i1", name="Solo", source=ProviderSource.ITUNES, genres=["Pop"]),
            ProviderSource.ITUNES,
        )

        async with session_factory() as session:
            artist = await session.get(ArtistModel, ref.artist_id)
        assert artist.followers == 50
        assert artist.itunes_id == "i1"
        assert artist.genres == ["Pop"]

    async def test_missing_native_id_is_a_noop(self, reconciler, session_factory) -> None:
        ref = await reconciler.find_or_create_artist("Solo")

        await reconciler.update_artist_with_music_info(
            ref.artist_id,
            UnifiedArtist(id="", name="Solo", source=ProviderSource.DEEZER, followers=5),
            ProviderSource.DEEZER,
        )

        async with session_factory() as session:
            artist = await session.get(ArtistModel, ref.artist_id)
        assert artist.followers is None
        assert artist.last_updated is None


class TestReleaseMerge:
    async def test_fills_only_empty_fields(self, reconciler, session_factory, deezer, itunes) -> None:
        ref = await reconciler.find_or_create_artist("X")
        await reconciler.create_release_from_album(
            deezer.album("1", "A", cover_url="https://dz/cover.jpg", release_date="2020-01-01"),
            ref.artist_id,
            ProviderSource.DEEZER,
        )
        existing = (await _releases(session_factory, ref.artist_id))[0]
        assert existing.cover_small is None

        changed = await reconciler.update_release_with_additional_data(
            existing,
            itunes.album(
                "9",
                "A",
                cover_url="https://itunes/cover.jpg",
                cover_small="https://itunes/small.jpg",
                release_date="1999-12-31",
            ),
            ProviderSource.ITUNES,
        )

        assert changed is True
        merged = (await _releases(session_factory, ref.artist_id))[0]
        assert merged.cover_small == "https://itunes/small.jpg"
        assert merged.cover_url == "https://dz/cover.jpg"
        assert merged.release_date == "2020-01-01"
        assert merged.deezer_id == "1"
        assert merged.itunes_id == "9"

    async def test_nothing_to_fill_reports_unchanged(self, reconciler, session_factory, deezer) -> None:
        ref = await reconciler.find_or_create_artist("X")
        album = deezer.album("1", "A")
        await reconciler.create_release_from_album(album, ref.artist_id, ProviderSource.DEEZER)
        existing = (await _releases(session_factory, ref.artist_id))[0]

        assert await reconciler.update_release_with_additional_data(
            existing, album, ProviderSource.DEEZER
        ) is False

    async def test_duplicate_title_insert_returns_false(self, reconciler, deezer) -> None:
        ref = await reconciler.find_or_create_artist("X")

        assert await reconciler.create_release_from_album(
            deezer.album("1", "A"), ref.artist_id, ProviderSource.DEEZER
        )
        assert not await reconciler.create_release_from_album(
            deezer.album("2", "A"), ref.artist_id, ProviderSource.DEEZER
        )

    async def test_release_exists_by_id_or_title(self, reconciler, deezer) -> None:
        ref = await reconciler.find_or_create_artist("X")
        await reconciler.create_release_from_album(
            deezer.album("1", "A"), ref.artist_id, ProviderSource.DEEZER
        )

        assert await reconciler.release_exists("1", ref.artist_id, "whatever", ProviderSource.DEEZER)
        assert not await reconciler.release_exists("2", ref.artist_id, "A", ProviderSource.DEEZER)
        assert await reconciler.release_exists(None, ref.artist_id, "A", ProviderSource.DEEZER)
