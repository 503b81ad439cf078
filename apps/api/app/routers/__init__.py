"""API routers."""

from app.routers.internal import router as internal_router
from app.routers.settings import router as settings_router

__all__ = ["internal_router", "settings_router"]
