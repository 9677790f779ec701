"""API schemas."""

from revyou.api.schemas.imports import (
    CancelJobResponse,
    CreateImportJobRequest,
    CreateImportJobResponse,
    ImportJobResponse,
    ImportLogResponse,
)

__all__ = [
    "CancelJobResponse",
    "CreateImportJobRequest",
    "CreateImportJobResponse",
    "ImportJobResponse",
    "ImportLogResponse",
]
