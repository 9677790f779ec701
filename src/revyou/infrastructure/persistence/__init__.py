"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    ArtistModel,
    Base,
    DiscographyCacheModel,
    ImportJobModel,
    ImportLogModel,
    ReleaseModel,
    ensure_utc_aware,
    utc_now,
)
from .repositories import (
    ArtistRepository,
    DiscographyCacheRepository,
    ImportJobRepository,
    ImportLogRepository,
    ReleaseRepository,
    provider_id_attr,
)

__all__ = [
    # Database
    "Database",
    "Base",
    # Models
    "ArtistModel",
    "ReleaseModel",
    "DiscographyCacheModel",
    "ImportJobModel",
    "ImportLogModel",
    "ensure_utc_aware",
    "utc_now",
    # Repositories
    "ArtistRepository",
    "ReleaseRepository",
    "DiscographyCacheRepository",
    "ImportJobRepository",
    "ImportLogRepository",
    "provider_id_attr",
]
