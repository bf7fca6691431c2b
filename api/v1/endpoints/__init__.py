"""
API V1 Endpoints

FastAPI routers for all API endpoints.
"""

from .health import router as health_router
from .auth import router as auth_router
from .files import router as files_router

__all__ = [
    "health_router",
    "auth_router",
    "files_router",
]
