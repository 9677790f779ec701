"""API schemas for import jobs and scheduled import logs."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreateImportJobRequest(BaseModel):
    """Request schema for starting a playlist import."""

    playlist_url: str = Field(..., min_length=1, description="Playlist URL to import")
    created_by: str | None = Field(default=None, description="Who started the job")


class CreateImportJobResponse(BaseModel):
    success: bool = True
    job_id: str


class CancelJobResponse(BaseModel):
    success: bool


class ImportJobResponse(BaseModel):
    """One import job as stored in import_jobs."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    playlist_url: str
    status: str
    created_by: str | None = None
    progress: int = Field(0, ge=0, le=100, description="Percent of artists processed")
    total_artists: int = 0
    processed_artists: int = 0
    new_artists: int = 0
    updated_artists: int = 0
    new_releases: int = 0
    skipped_releases: int = 0
    error_count: int = 0
    errors: list[str] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ImportLogResponse(BaseModel):
    """One scheduled import run."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    status: str
    message: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime
    completed_at: datetime | None = None
