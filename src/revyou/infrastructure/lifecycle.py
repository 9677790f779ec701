"""Application lifecycle management for startup and shutdown tasks.

This module is the composition root: every component of the import pipeline is built
exactly once here and stored on app.state, routes pick them up via api/dependencies.py.

Build order:
    Database -> provider clients -> ProviderAggregator (owns ProviderStats)
    -> CatalogReconciler -> ImportOrchestrator -> ImportJobRunner
    -> ScheduledImportRunner, ReleaseDateBackfillService
"""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI

from revyou.application.services import (
    CatalogReconciler,
    ImportOrchestrator,
    ProviderAggregator,
    ReleaseDateBackfillService,
)
from revyou.application.workers import ImportJobRunner, ScheduledImportRunner
from revyou.config import Settings
from revyou.domain.exceptions import ConfigurationError
from revyou.domain.ports import IMetadataProvider, IPlaylistParser
from revyou.infrastructure.integrations import DeezerClient, ITunesClient
from revyou.infrastructure.observability import configure_logging
from revyou.infrastructure.persistence import Database
from revyou.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# Hey future me, this validates SQLite paths BEFORE we try creating the DB engine. SQLite
# needs to create -journal/-wal files next to the .db file, so the directory must be
# writable. We DON'T pre-create the .db file, SQLite does that on first connect. Returns
# early for non-file URLs (postgres, :memory:).
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE__URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


def build_lifespan(
    settings: Settings,
    playlist_parser: IPlaylistParser,
    primary: IMetadataProvider | None = None,
    fallback: IMetadataProvider | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create the FastAPI lifespan for the given settings and collaborators.

    Args:
        settings: Application settings
        playlist_parser: Playlist parser implementation (owned by the caller)
        primary: Primary metadata provider, defaults to DeezerClient
        fallback: Fallback metadata provider, defaults to ITunesClient

    Injected providers belong to the caller and stay open at shutdown. Only the
    default clients built here get closed.
    """

    # Listen future me, everything before `yield` runs at STARTUP, everything after at
    # SHUTDOWN. The finally block runs even when startup crashes halfway, so every
    # shutdown step checks whether its component was actually built.
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        configure_logging(
            log_level=settings.log_level,
            json_format=settings.observability.log_json_format,
            app_name=settings.app_name,
        )
        logger.info("Starting application: %s", settings.app_name)

        db: Database | None = None
        job_runner: ImportJobRunner | None = None
        owned_clients: list[IMetadataProvider] = []
        try:
            _validate_sqlite_path(settings)

            db = Database(settings.database)
            await db.create_tables()
            app.state.db = db
            logger.info("Database initialized: %s", settings.database.url)

            primary_provider = primary
            if primary_provider is None:
                primary_provider = DeezerClient(settings.deezer, RateLimiter.for_deezer())
                owned_clients.append(primary_provider)
            fallback_provider = fallback
            if fallback_provider is None:
                fallback_provider = ITunesClient(settings.itunes, RateLimiter.for_itunes())
                owned_clients.append(fallback_provider)

            aggregator = ProviderAggregator(
                primary_provider,
                fallback_provider,
                batch_delay_seconds=settings.importer.batch_lookup_delay_seconds,
            )
            reconciler = CatalogReconciler(db.session_factory, aggregator)
            orchestrator = ImportOrchestrator(
                reconciler, playlist_parser, db.session_factory, settings.importer
            )
            job_runner = ImportJobRunner(
                db.session_factory,
                orchestrator,
                job_list_limit=settings.importer.job_list_limit,
            )

            app.state.settings = settings
            app.state.provider_aggregator = aggregator
            app.state.import_orchestrator = orchestrator
            app.state.import_job_runner = job_runner
            app.state.scheduled_import_runner = ScheduledImportRunner(
                db.session_factory,
                job_runner,
                orchestrator,
                playlist_delay_seconds=settings.importer.playlist_delay_seconds,
            )
            app.state.release_date_backfill = ReleaseDateBackfillService(
                db.session_factory,
                aggregator,
                batch_size=settings.importer.backfill_batch_size,
                delay_seconds=settings.importer.backfill_delay_seconds,
            )
            logger.info(
                "Import pipeline ready (primary: %s, fallback: %s)",
                primary_provider.source.value,
                fallback_provider.source.value,
            )

            yield

        except Exception as e:
            logger.exception("Error during application startup: %s", e)
            raise
        finally:
            logger.info("Shutting down application")

            # 1. In-flight jobs first: they still write their failed status to the DB
            if job_runner is not None:
                try:
                    await job_runner.shutdown()
                except Exception as e:
                    logger.exception("Error stopping import jobs: %s", e)

            # 2. HTTP clients we built, injected ones are closed by whoever made them
            for provider in owned_clients:
                try:
                    await provider.close()
                except Exception as e:
                    logger.exception("Error closing %s client: %s", provider.source.value, e)

            # 3. Database last
            if db is not None:
                try:
                    await db.close()
                    logger.info("Database connection closed")
                except Exception as e:
                    logger.exception("Error closing database: %s", e)

    return lifespan
