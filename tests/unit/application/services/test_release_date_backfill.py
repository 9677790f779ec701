"""Tests for ReleaseDateBackfillService."""

from unittest.mock import AsyncMock

from revyou.application.services import ReleaseDateBackfillService
from revyou.infrastructure.persistence import ReleaseRepository


async def _dates(session_factory, artist_id: str) -> dict[str, str | None]:
    async with session_factory() as session:
        releases = await ReleaseRepository(session).list_for_artist(artist_id)
    return {release.title: release.release_date for release in releases}


class TestReleaseDateBackfill:
    async def test_fills_from_discography_then_single_search(
        self, reconciler, aggregator, session_factory, deezer, itunes
    ) -> None:
        deezer.add_artist(
            "X",
            [
                deezer.album("1", "Midnight"),
                deezer.album("2", "Rare B-Sides"),
                deezer.album("3", "Lost Tapes"),
                deezer.album("4", "Dated", release_date="2019-05-05"),
            ],
        )
        result = await reconciler.process_artist("X")
        itunes.add_artist("X", [itunes.album("90", "Midnight - Single", release_date="2021-03-05")])
        itunes.release_dates["Rare B-Sides"] = "2015-10-10"

        service = ReleaseDateBackfillService(session_factory, aggregator, batch_size=50)
        outcome = await service.fill_missing_release_dates()

        assert outcome.processed == 3
        assert outcome.updated == 2
        assert outcome.errors == 0
        assert await _dates(session_factory, result.artist_id) == {
            "Dated": "2019-05-05",
            "Lost Tapes": None,
            "Midnight": "2021-03-05",
            "Rare B-Sides": "2015-10-10",
        }

    async def test_nothing_to_do(self, aggregator, session_factory) -> None:
        service = ReleaseDateBackfillService(session_factory, aggregator)

        outcome = await service.fill_missing_release_dates()

        assert (outcome.processed, outcome.updated, outcome.errors) == (0, 0, 0)

    async def test_lookup_error_is_counted(
        self, reconciler, aggregator, session_factory, deezer, mocker
    ) -> None:
        deezer.add_artist("X", [deezer.album("1", "Midnight")])
        await reconciler.process_artist("X")
        mocker.patch.object(
            aggregator, "find_release_date", new=AsyncMock(side_effect=RuntimeError("boom"))
        )

        outcome = await ReleaseDateBackfillService(
            session_factory, aggregator
        ).fill_missing_release_dates()

        assert outcome.processed == 1
        assert outcome.errors == 1

    async def test_pauses_between_artists(
        self, reconciler, aggregator, session_factory, deezer
    ) -> None:
        deezer.add_artist("X", [deezer.album("1", "One")])
        deezer.add_artist("Y", [deezer.album("2", "Two")])
        await reconciler.process_artist("X")
        await reconciler.process_artist("Y")
        sleep = AsyncMock()

        await ReleaseDateBackfillService(
            session_factory, aggregator, delay_seconds=1.0, sleep=sleep
        ).fill_missing_release_dates()

        sleep.assert_awaited_once_with(1.0)
