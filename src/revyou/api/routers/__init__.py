"""API router initialization."""

from fastapi import APIRouter

from revyou.api.routers import imports

api_router = APIRouter()
api_router.include_router(imports.router, prefix="/import", tags=["Import"])

__all__ = ["api_router", "imports"]
