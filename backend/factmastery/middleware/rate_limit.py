"""
Rate Limiting Middleware

Throttles clients using SlowAPI so a misbehaving practice client cannot
flood the attempt and goal endpoints.

Usage:
    from factmastery.middleware.rate_limit import limit_attempts

    @router.post("/{track_id}")
    @limit_attempts
    async def submit_attempts(request: Request, ...):
        ...

Rate limit configurations (from settings):
- DEFAULT: General API endpoints
- ATTEMPTS: Attempt batch submission
- GOALS: Daily goal reads and increments
"""

import logging

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from factmastery.config import settings
from factmastery.enums import RateLimitType

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Get client identifier for rate limiting.

    Uses X-Forwarded-For header if behind a proxy,
    otherwise falls back to direct IP address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[settings.get_rate_limit(RateLimitType.DEFAULT)],
    enabled=settings.RATE_LIMIT_ENABLED,
)


def setup_rate_limiting(app: FastAPI, enabled: bool = True) -> None:
    """
    Configure rate limiting on the FastAPI app.

    Args:
        app: FastAPI application instance
        enabled: Whether to enable rate limiting
    """
    if not enabled:
        limiter.enabled = False
        logger.info("Rate limiting disabled")
        return

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    logger.info("Rate limiting enabled")


def limit_attempts(func):
    """Decorator for attempt submission endpoints."""
    return limiter.limit(settings.get_rate_limit(RateLimitType.ATTEMPTS))(func)


def limit_goals(func):
    """Decorator for daily goal endpoints."""
    return limiter.limit(settings.get_rate_limit(RateLimitType.GOALS))(func)
