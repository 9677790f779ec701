"""Application services - provider resolution, catalog reconciliation, imports."""

from revyou.application.services.catalog_reconciler import (
    ARTIST_NOT_FOUND,
    CatalogReconciler,
)
from revyou.application.services.import_orchestrator import (
    ImportOrchestrator,
    collect_artists,
)
from revyou.application.services.provider_aggregator import (
    DateMatch,
    ProviderAggregator,
    ProviderStats,
)
from revyou.application.services.release_date_backfill import ReleaseDateBackfillService

__all__ = [
    "ARTIST_NOT_FOUND",
    "CatalogReconciler",
    "DateMatch",
    "ImportOrchestrator",
    "ProviderAggregator",
    "ProviderStats",
    "ReleaseDateBackfillService",
    "collect_artists",
]
