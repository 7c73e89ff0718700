"""API Routers package."""

from factmastery.routers import goals as goals_router
from factmastery.routers import health as health_router
from factmastery.routers import progress as progress_router

__all__ = ["goals_router", "health_router", "progress_router"]
