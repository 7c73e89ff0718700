"""
Strict Base Model for API Request/Response Validation

Base classes that pin down the API contract between the service and its
clients.

- Unknown request fields are rejected with 422 (extra="forbid")
- Response models ignore extra attributes so they can be built from
  service dataclasses and ORM rows

Usage:
    class GoalIncrementRequest(StrictRequest):
        user_id: str
        goal_type: GoalType

    class GoalProgressResponse(StrictResponse):
        total: int
        completed: int
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,
        str_strip_whitespace=True,
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    Features:
        - extra="ignore": Silently ignores extra attributes
        - from_attributes=True: Builds from dataclasses and ORM rows
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )


# =============================================================================
# Common Response Patterns
# =============================================================================


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    error: str  # Error code (e.g., "fact_out_of_range")
    message: str
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None
    timestamp: datetime


class SuccessResponse(StrictResponse):
    """Simple success response for operations without complex output."""

    success: bool = True
    message: str
