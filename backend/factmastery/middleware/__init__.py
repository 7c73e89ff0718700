"""HTTP middleware: error handling and rate limiting."""

from factmastery.middleware.error_handling import (
    ErrorHandlingMiddleware,
    FactRangeError,
    FactWriteConflictError,
    ServiceError,
    StoreError,
    ValidationError,
    setup_error_handling,
)
from factmastery.middleware.rate_limit import limiter, setup_rate_limiting

__all__ = [
    "ErrorHandlingMiddleware",
    "FactRangeError",
    "FactWriteConflictError",
    "ServiceError",
    "StoreError",
    "ValidationError",
    "setup_error_handling",
    "limiter",
    "setup_rate_limiting",
]
