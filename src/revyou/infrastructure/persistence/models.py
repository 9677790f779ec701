"""SQLAlchemy ORM models for the revyou catalog and import pipeline."""

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Hey future me, utc_now() ensures ALL timestamps are UTC! Never use datetime.now() without
# timezone - naive datetimes break the "stale after 24h" comparison of the refresh sweep.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# ALWAYS use this before comparing a DB datetime with datetime.now(UTC).
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, name is THE reconciliation key: find-or-create looks artists up by exact name,
# so it carries the unique constraint. Provider ids are plain indexed columns, NOT unique -
# both can sit on one row as metadata is backfilled from whichever provider answered.
class ArtistModel(Base):
    """Catalog artist, populated by the import pipeline."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    deezer_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    itunes_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    # Artist id of the playlist platform the name was scraped from (if the parser had one)
    external_playlist_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    genres: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    popularity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    followers: Mapped[int | None] = mapped_column(Integer, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # Set whenever provider metadata was merged; drives the "not updated in 24h" sweep
    last_updated: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    releases: Mapped[list["ReleaseModel"]] = relationship(
        "ReleaseModel", back_populates="artist", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_artists_name_lower", func.lower(name)),
        Index("ix_artists_last_updated", "last_updated"),
    )


# Hey future me - the (artist_id, title) unique constraint is THE de-duplication invariant.
# release_exists() in the reconciler is only an optimization; when two jobs race on the same
# artist, this constraint is what actually stops the second insert. The IntegrityError it
# raises is an expected "already exists" outcome, not a bug.
class ReleaseModel(Base):
    """A release (album/single/compilation) of exactly one artist."""

    __tablename__ = "releases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    release_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="album", server_default="album"
    )
    # YYYY-MM-DD (or YYYY when that's all a provider knows)
    release_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    deezer_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    itunes_id: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    cover_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cover_small: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cover_medium: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cover_big: Mapped[str | None] = mapped_column(String(512), nullable=True)
    cover_xl: Mapped[str | None] = mapped_column(String(512), nullable=True)
    total_tracks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    explicit_lyrics: Mapped[bool | None] = mapped_column(sa.Boolean(), nullable=True)
    # Deezer scale 0-4 (0 = not explicit, 1 = explicit, 2 = unknown, 3 = edited, 4 = partially)
    explicit_content_lyrics: Mapped[int | None] = mapped_column(Integer, nullable=True)
    explicit_content_cover: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # [{"name": ..., "id"?: ...}]
    genres: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    upc: Mapped[str | None] = mapped_column(String(50), nullable=True)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # [{"name": ..., "role": ..., "id"?: ...}]
    contributors: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    # {"deezer": url, "itunes": url, "appleMusic": url}
    streaming_links: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    artist: Mapped["ArtistModel"] = relationship("ArtistModel", back_populates="releases")

    __table_args__ = (
        sa.UniqueConstraint("artist_id", "title", name="uq_releases_artist_title"),
        Index("ix_releases_missing_date", "release_date"),
    )


# Hey future me - one row per (artist, provider): the album ids we saw on the last
# SUCCESSFUL discography fetch. It is always replaced wholesale (delete + insert), never
# patched, so a bad cache heals itself on the next run.
class DiscographyCacheModel(Base):
    """Snapshot of provider album ids per artist, for incremental re-imports."""

    __tablename__ = "discography_cache"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    album_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_updated: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        sa.UniqueConstraint("artist_id", "source", name="uq_discography_cache_artist_source"),
    )


# Hey future me - ImportJobModel is written ONLY by ImportJobRunner and read by the admin
# polling routes. Status: pending -> processing -> completed | failed (strings, not an SQL
# enum, SQLite compatibility). Rows outlive the process, the cancellation flag does not.
class ImportJobModel(Base):
    """One background playlist import."""

    __tablename__ = "import_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    playlist_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_artists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_artists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_artists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_artists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_releases: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_releases: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_import_jobs_created", "created_at"),)


class ImportLogModel(Base):
    """One scheduled (multi-playlist) import run."""

    __tablename__ = "import_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="scheduled")
    # running, completed, failed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="running")
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # {"playlists": [{"url", "job_id", "status"}], "stats": {...}, "duration_seconds": ...}
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_import_logs_created", "created_at"),)
