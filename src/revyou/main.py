"""FastAPI application factory.

The playlist parser is an external collaborator and has to be handed in, e.g.:

    app = create_app(MyPlaylistParser())
    uvicorn.run(app)
"""

from fastapi import FastAPI

from revyou.api import api_router
from revyou.api.exception_handlers import register_exception_handlers
from revyou.config import Settings, get_settings
from revyou.domain.ports import IMetadataProvider, IPlaylistParser
from revyou.infrastructure.lifecycle import build_lifespan


def create_app(
    playlist_parser: IPlaylistParser,
    settings: Settings | None = None,
    primary: IMetadataProvider | None = None,
    fallback: IMetadataProvider | None = None,
) -> FastAPI:
    """Build the application with its lifespan, routes and exception handlers."""
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        lifespan=build_lifespan(settings, playlist_parser, primary, fallback),
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app
