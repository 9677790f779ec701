"""Import pipeline results, progress snapshots and job states."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ImportJobStatus(str, Enum):
    """Lifecycle of one background import job: pending -> processing -> completed|failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportJobStatus.COMPLETED, ImportJobStatus.FAILED)


class ImportLogStatus(str, Enum):
    """Status of one scheduled import run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ArtistRef:
    """Result of find-or-create: the artist row id and whether THIS call inserted it."""

    artist_id: str
    created: bool


@dataclass
class ArtistImportResult:
    """Outcome of processing one artist name."""

    new_releases: int = 0
    skipped_releases: int = 0
    error: str | None = None
    artist_id: str | None = None
    created: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


# Hey future me - this is what every orchestrator entry point returns and what the
# scheduler/admin "run now" shows. total/processed are only informative, the five
# reported counters are new_artists, updated_artists, new_releases, skipped_releases, errors.
@dataclass
class ImportStats:
    """Summary of an import or refresh run."""

    new_artists: int = 0
    updated_artists: int = 0
    new_releases: int = 0
    skipped_releases: int = 0
    errors: list[str] = field(default_factory=list)
    total_artists: int = 0
    processed_artists: int = 0

    def merge(self, other: "ImportStats") -> None:
        """Add another run's counters into this one (in place)."""
        self.new_artists += other.new_artists
        self.updated_artists += other.updated_artists
        self.new_releases += other.new_releases
        self.skipped_releases += other.skipped_releases
        self.errors.extend(other.errors)
        self.total_artists += other.total_artists
        self.processed_artists += other.processed_artists

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ImportProgress:
    """Snapshot passed to the progress callback after every artist."""

    total_artists: int
    processed_artists: int
    new_releases: int
    skipped_releases: int
    error_count: int
    current_artist: str | None = None

    @property
    def percent(self) -> int:
        if self.total_artists <= 0:
            return 0
        return round(self.processed_artists / self.total_artists * 100)


@dataclass
class BackfillResult:
    """Outcome of one release-date backfill pass."""

    processed: int = 0
    updated: int = 0
    errors: int = 0
