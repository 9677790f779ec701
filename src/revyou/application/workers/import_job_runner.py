"""Background import jobs with progress tracking and cooperative cancellation.

Hey future me - the job table is the source of truth for STATUS, this class only keeps
what can't survive a restart anyway:

- _cancel_flags: job id -> asyncio.Event, set by cancel_import_job()
- _tasks: job id -> the asyncio.Task running it

Both are instance attributes (no module globals), so every runner (and every test) starts
clean. Entries are removed in the task's finally block no matter how the job ends.

State machine:  pending -> processing -> completed | failed

Cancellation is cooperative. The flag is only checked inside the progress callback, which
the orchestrator awaits before the first artist and after each one. So a cancel request
lets the current artist finish its HTTP calls and DB writes, then the callback raises
ImportJobCancelledError, which unwinds the orchestrator and lands in the failed branch.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revyou.application.services.import_orchestrator import ImportOrchestrator
from revyou.domain.entities import ImportJobStatus, ImportProgress, ImportStats
from revyou.domain.exceptions import ImportJobCancelledError
from revyou.domain.ports import ProgressCallback
from revyou.infrastructure.observability import job_id_var, set_job_id
from revyou.infrastructure.persistence import ImportJobModel, ImportJobRepository

logger = logging.getLogger(__name__)

SHUTDOWN_MESSAGE = "Job was cancelled by application shutdown"


class ImportJobRunner:
    """Runs playlist imports as background tasks tracked in the import_jobs table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: ImportOrchestrator,
        job_list_limit: int = 20,
    ) -> None:
        self._session_factory = session_factory
        self._orchestrator = orchestrator
        self._job_list_limit = job_list_limit
        self._cancel_flags: dict[str, asyncio.Event] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def active_job_ids(self) -> list[str]:
        return list(self._tasks)

    async def create_import_job(self, playlist_url: str, created_by: str | None = None) -> str:
        """Insert a pending job and start it in the background.

        Returns right after the insert so the caller can poll get_import_job().
        """
        async with self._session_factory() as session:
            job = await ImportJobRepository(session).add(
                ImportJobModel(
                    playlist_url=playlist_url,
                    status=ImportJobStatus.PENDING.value,
                    created_by=created_by,
                )
            )
            await session.commit()
            job_id = job.id

        # Flag goes in BEFORE the task exists, so a cancel racing the first progress
        # callback is still seen
        self._cancel_flags[job_id] = asyncio.Event()
        self._tasks[job_id] = asyncio.create_task(
            self._process(job_id, playlist_url), name=f"import-job-{job_id}"
        )
        logger.info(f"Created import job {job_id} for {playlist_url}")
        return job_id

    def cancel_import_job(self, job_id: str) -> bool:
        """Request cancellation of an in-flight job.

        Returns:
            False if this runner doesn't track the job (unknown, finished, or started
            before a restart)
        """
        flag = self._cancel_flags.get(job_id)
        if flag is None:
            return False
        flag.set()
        logger.info(f"Cancellation requested for import job {job_id}")
        return True

    async def get_import_job(self, job_id: str) -> ImportJobModel | None:
        async with self._session_factory() as session:
            return await ImportJobRepository(session).get(job_id)

    async def get_all_import_jobs(self, limit: int | None = None) -> list[ImportJobModel]:
        """Most recent jobs first."""
        async with self._session_factory() as session:
            return await ImportJobRepository(session).list_recent(limit or self._job_list_limit)

    async def wait_for_job(self, job_id: str) -> ImportJobModel | None:
        """Wait until the job's task is done (if it's still running) and return its row."""
        task = self._tasks.get(job_id)
        if task is not None:
            # asyncio.wait never raises the task's exception or CancelledError
            await asyncio.wait({task})
        return await self.get_import_job(job_id)

    async def shutdown(self) -> None:
        """Cancel every in-flight job. Each one records itself as failed on the way out."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} running import job(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # JOB EXECUTION
    # =========================================================================

    async def _process(self, job_id: str, playlist_url: str) -> None:
        token = set_job_id(job_id)
        flag = self._cancel_flags[job_id]
        try:
            if flag.is_set():
                raise ImportJobCancelledError(job_id)

            await self._mark_processing(job_id)
            logger.info(f"Import job {job_id} started")

            stats = await self._orchestrator.import_from_playlist(
                playlist_url,
                on_progress=self._progress_callback(job_id, flag),
                raise_on_parse_failure=True,
            )
            await self._complete(job_id, stats)
            logger.info(
                f"Import job {job_id} completed: {stats.new_releases} new releases, "
                f"{len(stats.errors)} errors"
            )
        except ImportJobCancelledError as e:
            logger.info(f"Import job {job_id} cancelled")
            await self._fail(job_id, str(e))
        except asyncio.CancelledError:
            await self._fail(job_id, SHUTDOWN_MESSAGE)
            raise
        except Exception as e:
            logger.exception(f"Import job {job_id} failed: {e}")
            await self._fail(job_id, str(e) or e.__class__.__name__)
        finally:
            self._cancel_flags.pop(job_id, None)
            self._tasks.pop(job_id, None)
            job_id_var.reset(token)

    def _progress_callback(self, job_id: str, flag: asyncio.Event) -> ProgressCallback:
        async def on_progress(progress: ImportProgress) -> None:
            if flag.is_set():
                raise ImportJobCancelledError(job_id)
            async with self._session_factory() as session:
                await ImportJobRepository(session).update_fields(
                    job_id,
                    progress=progress.percent,
                    total_artists=progress.total_artists,
                    processed_artists=progress.processed_artists,
                    new_releases=progress.new_releases,
                    skipped_releases=progress.skipped_releases,
                    error_count=progress.error_count,
                )
                await session.commit()

        return on_progress

    async def _mark_processing(self, job_id: str) -> None:
        async with self._session_factory() as session:
            await ImportJobRepository(session).mark_processing(job_id)
            await session.commit()

    async def _complete(self, job_id: str, stats: ImportStats) -> None:
        async with self._session_factory() as session:
            await ImportJobRepository(session).mark_completed(
                job_id,
                total_artists=stats.total_artists,
                processed_artists=stats.processed_artists,
                new_artists=stats.new_artists,
                updated_artists=stats.updated_artists,
                new_releases=stats.new_releases,
                skipped_releases=stats.skipped_releases,
                error_count=len(stats.errors),
                errors=list(stats.errors),
            )
            await session.commit()

    async def _fail(self, job_id: str, message: str) -> None:
        # Last stop for a job: if even this write fails there's nobody left to tell
        try:
            async with self._session_factory() as session:
                await ImportJobRepository(session).mark_failed(job_id, message)
                await session.commit()
        except Exception:
            logger.exception(f"Could not mark import job {job_id} as failed")
