"""
Error Handling Middleware

Provides consistent, informative error responses across the API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details in production)
- Custom exception classes for the failure modes of the progression engine

Usage:
    from factmastery.middleware.error_handling import setup_error_handling, ServiceError

    # Add middleware to app
    setup_error_handling(app, debug=settings.DEBUG)

    # Raise custom exceptions
    raise FactRangeError("TRACK5", ["FACT100"])

Exception handling hierarchy:
    - HTTPException: Re-raised for FastAPI's built-in handler
    - ServiceError: Custom exceptions → structured JSON response
    - Exception: Catch-all for unexpected errors → sanitized response
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Database connection failed", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details


class ValidationError(ServiceError):
    """
    Data validation error.

    Raised when input data fails validation.
    """

    status_code = 422
    error_code = "validation_error"


class FactRangeError(ValidationError):
    """
    Attempt batch references facts outside the resolved track.

    The whole batch is rejected; nothing is written.
    """

    error_code = "fact_out_of_range"

    def __init__(self, track_id: str, fact_ids: list[str]):
        super().__init__(
            f"Invalid facts for track {track_id}: {', '.join(fact_ids)}",
            details={"track_id": track_id, "fact_ids": fact_ids},
        )
        self.track_id = track_id
        self.fact_ids = fact_ids


class FactWriteConflictError(ServiceError):
    """
    Conditional fact write kept losing to concurrent writers.

    Raised after the retry budget is exhausted.
    """

    status_code = 409
    error_code = "fact_write_conflict"


class StoreError(ServiceError):
    """
    Persistence failure.

    Raised when a database read or write fails. Facts already committed
    earlier in the same batch stay committed.
    """

    status_code = 503
    error_code = "store_unavailable"


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            response = await call_next(request)
            return response

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except ServiceError as e:
            logger.error(
                f"[{error_id}] {e.error_code}: {e.message}",
                extra={
                    "error_id": error_id,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                    "details": e.details,
                },
            )

            # Client errors carry details the caller needs to fix the request
            expose_details = self.debug or e.status_code < 500

            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.error_code,
                    "message": e.message,
                    "error_id": error_id,
                    "details": e.details if expose_details else None,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )

        except Exception as e:
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            content = {
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "error_id": error_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

            if self.debug:
                content["details"] = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(status_code=500, content=content)


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include stack traces in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")
