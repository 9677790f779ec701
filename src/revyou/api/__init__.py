"""HTTP API for the import pipeline.

Hey future me - only admin routes live here. `api_router` from routers/ is mounted
by main.create_app(); all components come from app.state via dependencies.py.
"""

from revyou.api.routers import api_router

__all__ = ["api_router"]
