"""Import job API endpoints."""

# Hey future me - admin endpoints for the import pipeline. Jobs are fire-and-forget:
# POST returns the id right away and the client polls GET /jobs/{id} for progress.
# Cancel only works for jobs THIS process is running; after a restart old "processing"
# rows can be read but not cancelled (404, same as an unknown id).

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from revyou.api.dependencies import (
    get_aggregator,
    get_app_settings,
    get_database,
    get_job_runner,
    get_release_date_backfill,
    get_scheduled_runner,
)
from revyou.api.schemas import (
    CancelJobResponse,
    CreateImportJobRequest,
    CreateImportJobResponse,
    ImportJobResponse,
    ImportLogResponse,
)
from revyou.application.services import ProviderAggregator, ReleaseDateBackfillService
from revyou.application.workers import ImportJobRunner, ScheduledImportRunner
from revyou.config import Settings
from revyou.infrastructure.persistence import Database, ImportLogRepository

router = APIRouter()


@router.post("/jobs", response_model=CreateImportJobResponse, status_code=202)
async def create_import_job(
    request: CreateImportJobRequest,
    job_runner: ImportJobRunner = Depends(get_job_runner),
) -> CreateImportJobResponse:
    """Start a background import of one playlist."""
    job_id = await job_runner.create_import_job(
        request.playlist_url.strip(), created_by=request.created_by
    )
    return CreateImportJobResponse(success=True, job_id=job_id)


@router.get("/jobs", response_model=list[ImportJobResponse])
async def list_import_jobs(
    limit: int | None = Query(None, ge=1, le=200),
    job_runner: ImportJobRunner = Depends(get_job_runner),
) -> list[ImportJobResponse]:
    """Most recent import jobs first."""
    jobs = await job_runner.get_all_import_jobs(limit)
    return [ImportJobResponse.model_validate(job) for job in jobs]


@router.get("/jobs/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    job_runner: ImportJobRunner = Depends(get_job_runner),
) -> ImportJobResponse:
    job = await job_runner.get_import_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Import job not found: {job_id}")
    return ImportJobResponse.model_validate(job)


@router.post("/jobs/{job_id}/cancel", response_model=CancelJobResponse)
async def cancel_import_job(
    job_id: str,
    job_runner: ImportJobRunner = Depends(get_job_runner),
) -> CancelJobResponse:
    """Request cancellation. Takes effect after the artist currently being processed."""
    if not job_runner.cancel_import_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found or already completed")
    return CancelJobResponse(success=True)


@router.get("/logs", response_model=list[ImportLogResponse])
async def list_import_logs(
    limit: int = Query(20, ge=1, le=200),
    db: Database = Depends(get_database),
) -> list[ImportLogResponse]:
    """Scheduled import runs, newest first."""
    async with db.session_factory() as session:
        logs = await ImportLogRepository(session).list_recent(limit)
    return [ImportLogResponse.model_validate(log) for log in logs]


@router.get("/provider-stats")
async def get_provider_stats(
    aggregator: ProviderAggregator = Depends(get_aggregator),
) -> dict[str, Any]:
    """Lookup counters since process start."""
    return aggregator.stats.snapshot()


@router.get("/provider-health")
async def get_provider_health(
    aggregator: ProviderAggregator = Depends(get_aggregator),
) -> dict[str, bool]:
    """Probe every metadata provider with a known artist."""
    return await aggregator.check_providers()


@router.post("/scheduled/run")
async def run_scheduled_import(
    settings: Settings = Depends(get_app_settings),
    runner: ScheduledImportRunner = Depends(get_scheduled_runner),
) -> dict[str, Any]:
    """Run the configured playlists plus the stale-artist refresh now.

    Awaits the whole run; the outcome is also written to import_logs.
    """
    stats = await runner.run(settings.importer.scheduled_playlists)
    return stats.to_dict()


@router.post("/release-dates/backfill")
async def backfill_release_dates(
    backfill: ReleaseDateBackfillService = Depends(get_release_date_backfill),
) -> dict[str, int]:
    """Fill missing release dates for one batch of releases."""
    result = await backfill.fill_missing_release_dates()
    return {"processed": result.processed, "updated": result.updated, "errors": result.errors}
