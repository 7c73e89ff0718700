"""
Health Check Endpoints

Provides health check endpoints for monitoring and orchestration.

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Detailed health with dependency checks
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.config import settings
from factmastery.db.base import get_db
from factmastery.db.redis import SignalQueue, get_redis

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns a simple status response indicating the API is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@router.get("/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """
    Detailed health check with dependency status.

    Checks connectivity to:
    - PostgreSQL database
    - Redis (and the depth of the completion signal queue)
    """
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    # Check PostgreSQL
    try:
        await db.execute(text("SELECT 1"))
        health["dependencies"]["postgres"] = {"status": "healthy"}
    except Exception as e:
        health["dependencies"]["postgres"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    # Check Redis
    try:
        r = await get_redis()
        await r.ping()
        health["dependencies"]["redis"] = {
            "status": "healthy",
            "pending_signals": await SignalQueue().pending(),
        }
    except Exception as e:
        health["dependencies"]["redis"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    return health
