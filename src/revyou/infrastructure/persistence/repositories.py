"""Repository implementations for the catalog and import tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from revyou.domain.entities import ImportJobStatus, ProviderSource

from .models import (
    ArtistModel,
    DiscographyCacheModel,
    ImportJobModel,
    ImportLogModel,
    ReleaseModel,
    utc_now,
)


def provider_id_attr(source: ProviderSource) -> str:
    """Column name holding the provider-native id ("deezer_id", "itunes_id")."""
    return f"{source.value}_id"


class ArtistRepository:
    """Artist persistence."""

    # Hey future me, this is the Repository pattern! Each repo gets its own AsyncSession
    # injected. The session is NOT committed here - the service that opened it decides.
    # Repo only stages changes (session.add, model updates) and flushes when it needs the
    # row id or wants constraint violations to surface NOW instead of at commit.
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, artist_id: str) -> ArtistModel | None:
        return await self.session.get(ArtistModel, artist_id)

    async def get_by_name(self, name: str) -> ArtistModel | None:
        stmt = select(ArtistModel).where(ArtistModel.name == name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, artist: ArtistModel) -> ArtistModel:
        """Stage and flush a new artist.

        Raises:
            IntegrityError: Another session inserted the same name first
        """
        self.session.add(artist)
        await self.session.flush()
        return artist

    async def list_with_provider_id(
        self, updated_before: datetime | None = None
    ) -> list[ArtistModel]:
        """Artists carrying a Deezer or iTunes id, optionally only stale ones.

        Artists that were never updated count as stale.
        """
        stmt = select(ArtistModel).where(
            or_(ArtistModel.deezer_id.is_not(None), ArtistModel.itunes_id.is_not(None))
        )
        if updated_before is not None:
            stmt = stmt.where(
                or_(
                    ArtistModel.last_updated.is_(None),
                    ArtistModel.last_updated < updated_before,
                )
            )
        result = await self.session.execute(stmt.order_by(ArtistModel.name))
        return list(result.scalars().all())


class ReleaseRepository:
    """Release persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, release_id: str) -> ReleaseModel | None:
        return await self.session.get(ReleaseModel, release_id)

    async def get_by_provider_id(
        self, artist_id: str, source: ProviderSource, external_id: str
    ) -> ReleaseModel | None:
        column = getattr(ReleaseModel, provider_id_attr(source))
        stmt = (
            select(ReleaseModel)
            .where(ReleaseModel.artist_id == artist_id, column == external_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_title(self, artist_id: str, title: str) -> ReleaseModel | None:
        stmt = select(ReleaseModel).where(
            ReleaseModel.artist_id == artist_id, ReleaseModel.title == title
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, release: ReleaseModel) -> ReleaseModel:
        """Stage and flush a new release.

        Raises:
            IntegrityError: (artist_id, title) already taken
        """
        self.session.add(release)
        await self.session.flush()
        return release

    async def list_for_artist(self, artist_id: str) -> list[ReleaseModel]:
        stmt = (
            select(ReleaseModel)
            .where(ReleaseModel.artist_id == artist_id)
            .order_by(ReleaseModel.title)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_missing_release_date(self, limit: int) -> list[tuple[ReleaseModel, str]]:
        """Releases without a date, paired with their artist's name."""
        stmt = (
            select(ReleaseModel, ArtistModel.name)
            .join(ArtistModel, ReleaseModel.artist_id == ArtistModel.id)
            .where(or_(ReleaseModel.release_date.is_(None), ReleaseModel.release_date == ""))
            .order_by(ArtistModel.name, ReleaseModel.title)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(release, artist_name) for release, artist_name in result.all()]

    async def set_release_date(self, release_id: str, release_date: str) -> None:
        stmt = (
            update(ReleaseModel)
            .where(ReleaseModel.id == release_id)
            .values(release_date=release_date, updated_at=utc_now())
        )
        await self.session.execute(stmt)


class DiscographyCacheRepository:
    """Per (artist, provider) album id snapshots."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, artist_id: str, source: ProviderSource) -> DiscographyCacheModel | None:
        stmt = select(DiscographyCacheModel).where(
            DiscographyCacheModel.artist_id == artist_id,
            DiscographyCacheModel.source == source.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # Listen, delete + insert on purpose. Never patch the list in place: a replaced
    # snapshot is always exactly what the provider returned on the latest fetch.
    async def replace(
        self, artist_id: str, source: ProviderSource, album_ids: list[str]
    ) -> DiscographyCacheModel:
        await self.session.execute(
            delete(DiscographyCacheModel).where(
                DiscographyCacheModel.artist_id == artist_id,
                DiscographyCacheModel.source == source.value,
            )
        )
        entry = DiscographyCacheModel(
            artist_id=artist_id,
            source=source.value,
            album_ids=list(album_ids),
            last_updated=utc_now(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry


class ImportJobRepository:
    """Import job rows. Status transitions use UPDATE statements, no read-modify-write."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, job: ImportJobModel) -> ImportJobModel:
        self.session.add(job)
        await self.session.flush()
        return job

    async def get(self, job_id: str) -> ImportJobModel | None:
        return await self.session.get(ImportJobModel, job_id)

    async def list_recent(self, limit: int) -> list[ImportJobModel]:
        stmt = (
            select(ImportJobModel)
            .order_by(ImportJobModel.created_at.desc(), ImportJobModel.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_fields(self, job_id: str, **values: Any) -> None:
        await self.session.execute(
            update(ImportJobModel).where(ImportJobModel.id == job_id).values(**values)
        )

    async def mark_processing(self, job_id: str) -> None:
        await self.update_fields(
            job_id, status=ImportJobStatus.PROCESSING.value, started_at=utc_now()
        )

    async def mark_completed(self, job_id: str, **counters: Any) -> None:
        await self.update_fields(
            job_id,
            status=ImportJobStatus.COMPLETED.value,
            progress=100,
            completed_at=utc_now(),
            **counters,
        )

    async def mark_failed(self, job_id: str, error_message: str) -> None:
        await self.update_fields(
            job_id,
            status=ImportJobStatus.FAILED.value,
            error_message=error_message,
            completed_at=utc_now(),
        )


class ImportLogRepository:
    """Scheduled run log rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, log: ImportLogModel) -> ImportLogModel:
        self.session.add(log)
        await self.session.flush()
        return log

    async def get(self, log_id: str) -> ImportLogModel | None:
        return await self.session.get(ImportLogModel, log_id)

    async def finish(
        self, log_id: str, status: str, message: str, details: dict[str, Any]
    ) -> None:
        await self.session.execute(
            update(ImportLogModel)
            .where(ImportLogModel.id == log_id)
            .values(status=status, message=message, details=details, completed_at=utc_now())
        )

    async def list_recent(self, limit: int) -> list[ImportLogModel]:
        stmt = select(ImportLogModel).order_by(ImportLogModel.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
