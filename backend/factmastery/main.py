"""
Fact Mastery API

FastAPI application wiring: logging, database tables, the goal
recalculation registry, middleware, and routers.

Run with:
    uvicorn factmastery.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from factmastery.config import settings, yaml_config
from factmastery.db.base import async_session_maker, init_db
from factmastery.db.redis import close_redis_pool
from factmastery.dependencies import get_signal_sink
from factmastery.middleware import setup_error_handling, setup_rate_limiting
from factmastery.routers import goals_router, health_router, progress_router
from factmastery.services.goals import GoalRecalculationRegistry

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=yaml_config.get("logging", {}).get(
        "format", "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    ),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    app.state.goal_recalculator = GoalRecalculationRegistry(
        async_session_maker, signals=get_signal_sink()
    )
    app.state.goal_recalculator.start()
    logger.info(f"{settings.APP_NAME} started")

    yield

    app.state.goal_recalculator.shutdown()
    await close_redis_pool()
    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Fact mastery progression and daily practice goals",
    lifespan=lifespan,
)

setup_error_handling(app, debug=settings.DEBUG)
setup_rate_limiting(app, enabled=settings.RATE_LIMIT_ENABLED)

app.include_router(health_router.router)
app.include_router(progress_router.router)
app.include_router(goals_router.router)
