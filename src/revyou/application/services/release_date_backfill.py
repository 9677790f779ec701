"""Backfill release dates the primary provider didn't know.

Deezer leaves release_date empty for a surprising number of singles. iTunes usually
has them, but its titles carry suffixes like "Midnight - Single", which is why the
aggregator matches on normalize_title() keys.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services.provider_aggregator import ProviderAggregator
from revyou.domain.entities import BackfillResult
from revyou.infrastructure.persistence import ReleaseModel, ReleaseRepository

logger = logging.getLogger(__name__)


class ReleaseDateBackfillService:
    """Fill release_date on stored releases from the fallback provider."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        aggregator: ProviderAggregator,
        batch_size: int = 50,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._aggregator = aggregator
        self._batch_size = batch_size
        self._delay = delay_seconds
        self._sleep = sleep

    async def fill_missing_release_dates(self) -> BackfillResult:
        """Process one batch of dateless releases.

        Per artist, one discography match first (cheap: one search + one lookup), then
        a single-title search for whatever the discography didn't cover.
        """
        async with self._session_factory() as session:
            rows = await ReleaseRepository(session).list_missing_release_date(self._batch_size)

        result = BackfillResult()
        if not rows:
            logger.info("No releases without release date")
            return result

        by_artist: dict[str, list[ReleaseModel]] = defaultdict(list)
        for release, artist_name in rows:
            by_artist[artist_name].append(release)

        first = True
        for artist_name, releases in by_artist.items():
            if not first and self._delay:
                await self._sleep(self._delay)
            first = False

            found: dict[str, str] = {}
            for match in await self._aggregator.find_releases_for_date_update(
                artist_name, releases
            ):
                found[match.release.id] = match.release_date

            for release in releases:
                result.processed += 1
                try:
                    release_date = found.get(release.id)
                    if release_date is None:
                        release_date = await self._aggregator.find_release_date(
                            artist_name, release.title
                        )
                    if release_date:
                        await self._store(release.id, release_date)
                        result.updated += 1
                except Exception as e:
                    logger.error(
                        f"Release date backfill failed for '{release.title}' "
                        f"by '{artist_name}': {e}"
                    )
                    result.errors += 1

        logger.info(
            f"Release date backfill: {result.updated}/{result.processed} updated, "
            f"{result.errors} errors"
        )
        return result

    async def _store(self, release_id: str, release_date: str) -> None:
        async with self._session_factory() as session:
            await ReleaseRepository(session).set_release_date(release_id, release_date)
            await session.commit()
