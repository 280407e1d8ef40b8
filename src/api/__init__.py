"""API module exports."""

from src.api.admin import router as admin_router
from src.api.admin import verification_router
from src.api.assessments import router as assessments_router
from src.api.clients import router as clients_router
from src.api.deps import get_db, get_redis
from src.api.health import router as health_router
from src.api.library import router as library_router
from src.api.portal import router as portal_router
from src.api.products import router as products_router
from src.api.resources import router as resources_router

__all__ = [
    "admin_router",
    "assessments_router",
    "clients_router",
    "get_db",
    "get_redis",
    "health_router",
    "library_router",
    "portal_router",
    "products_router",
    "resources_router",
    "verification_router",
]
