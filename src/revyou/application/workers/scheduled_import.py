"""Scheduled import run: every configured playlist, then a stale-artist refresh.

Hey future me - each playlist goes through the normal ImportJobRunner (so it shows up in
the job list with progress and can be cancelled like any manual job), but the jobs are
awaited ONE BY ONE with a pause in between. The run itself is recorded as one
import_logs row that goes running -> completed | failed.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services.import_orchestrator import ImportOrchestrator
from revyou.application.workers.import_job_runner import ImportJobRunner
from revyou.domain.entities import ImportJobStatus, ImportLogStatus, ImportStats
from revyou.infrastructure.persistence import (
    ImportJobModel,
    ImportLogModel,
    ImportLogRepository,
)

logger = logging.getLogger(__name__)

SCHEDULED_BY = "scheduler"


def _job_stats(job: ImportJobModel) -> ImportStats:
    return ImportStats(
        new_artists=job.new_artists,
        updated_artists=job.updated_artists,
        new_releases=job.new_releases,
        skipped_releases=job.skipped_releases,
        errors=list(job.errors or []),
        total_artists=job.total_artists,
        processed_artists=job.processed_artists,
    )


class ScheduledImportRunner:
    """Runs the configured playlists plus a refresh sweep and logs the outcome."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        job_runner: ImportJobRunner,
        orchestrator: ImportOrchestrator,
        playlist_delay_seconds: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._job_runner = job_runner
        self._orchestrator = orchestrator
        self._playlist_delay = playlist_delay_seconds
        self._sleep = sleep

    async def run(self, playlist_urls: Sequence[str]) -> ImportStats:
        """Import each playlist as a job, then refresh stale artists.

        Returns:
            Combined counters of all playlist jobs and the refresh sweep
        """
        started = time.monotonic()
        log_id = await self._start_log(len(playlist_urls))
        stats = ImportStats()
        playlists: list[dict[str, Any]] = []

        try:
            for index, url in enumerate(playlist_urls):
                if index and self._playlist_delay:
                    await self._sleep(self._playlist_delay)

                job_id = await self._job_runner.create_import_job(url, created_by=SCHEDULED_BY)
                job = await self._job_runner.wait_for_job(job_id)
                status = job.status if job is not None else ImportJobStatus.FAILED.value
                playlists.append({"url": url, "job_id": job_id, "status": status})

                if job is None:
                    continue
                if status == ImportJobStatus.COMPLETED.value:
                    stats.merge(_job_stats(job))
                else:
                    stats.errors.append(f"{url}: {job.error_message or 'import failed'}")

            refresh = await self._orchestrator.update_existing_artists()
            stats.merge(refresh)
        except Exception as e:
            logger.exception(f"Scheduled import failed: {e}")
            await self._finish_log(
                log_id,
                ImportLogStatus.FAILED,
                f"Scheduled import failed: {e}",
                self._details(playlists, stats, started),
            )
            raise

        message = (
            f"Imported {len(playlists)} playlists: {stats.new_releases} new releases, "
            f"{stats.updated_artists} artists updated, {len(stats.errors)} errors"
        )
        logger.info(message)
        await self._finish_log(
            log_id, ImportLogStatus.COMPLETED, message, self._details(playlists, stats, started)
        )
        return stats

    @staticmethod
    def _details(
        playlists: list[dict[str, Any]], stats: ImportStats, started: float
    ) -> dict[str, Any]:
        return {
            "playlists": playlists,
            "stats": stats.to_dict(),
            "duration_seconds": round(time.monotonic() - started, 2),
        }

    async def _start_log(self, playlist_count: int) -> str:
        async with self._session_factory() as session:
            log = await ImportLogRepository(session).add(
                ImportLogModel(
                    status=ImportLogStatus.RUNNING.value,
                    message=f"Importing {playlist_count} playlists",
                )
            )
            await session.commit()
            return log.id

    async def _finish_log(
        self, log_id: str, status: ImportLogStatus, message: str, details: dict[str, Any]
    ) -> None:
        async with self._session_factory() as session:
            await ImportLogRepository(session).finish(log_id, status.value, message, details)
            await session.commit()
