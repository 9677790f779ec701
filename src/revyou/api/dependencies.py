"""Dependency injection for API endpoints."""

from typing import cast

from fastapi import HTTPException, Request

from revyou.application.services import ProviderAggregator, ReleaseDateBackfillService
from revyou.application.workers import ImportJobRunner, ScheduledImportRunner
from revyou.config import Settings
from revyou.infrastructure.persistence import Database


# Hey future me, everything here comes from app.state, filled once by the lifespan in
# infrastructure/lifecycle.py. Missing attribute = startup didn't finish (or failed),
# so 503 instead of an AttributeError 500.
def _from_state(request: Request, name: str) -> object:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return component


def get_database(request: Request) -> Database:
    return cast(Database, _from_state(request, "db"))


def get_job_runner(request: Request) -> ImportJobRunner:
    return cast(ImportJobRunner, _from_state(request, "import_job_runner"))


def get_aggregator(request: Request) -> ProviderAggregator:
    return cast(ProviderAggregator, _from_state(request, "provider_aggregator"))


def get_scheduled_runner(request: Request) -> ScheduledImportRunner:
    return cast(ScheduledImportRunner, _from_state(request, "scheduled_import_runner"))


def get_release_date_backfill(request: Request) -> ReleaseDateBackfillService:
    return cast(ReleaseDateBackfillService, _from_state(request, "release_date_backfill"))


def get_app_settings(request: Request) -> Settings:
    return cast(Settings, _from_state(request, "settings"))
