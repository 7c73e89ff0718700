"""
API Enums

Enums used by the HTTP layer.
"""

from enum import Enum


class RateLimitType(str, Enum):
    """
    Rate limit categories for different endpoint types.

    Each category has a corresponding rate limit configured in settings.
    Usage:
        from factmastery.enums import RateLimitType
        from factmastery.config import settings

        limit = settings.get_rate_limit(RateLimitType.ATTEMPTS)
    """

    # General API endpoints
    DEFAULT = "default"

    # Attempt batch submission (called after every practice round)
    ATTEMPTS = "attempts"

    # Daily goal reads and increments
    GOALS = "goals"
