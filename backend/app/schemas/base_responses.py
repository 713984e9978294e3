"""
Shared response envelopes for the CourtBook API.

Endpoint-specific schemas live next to their domain; these cover plain
acknowledgements and the error body written by the global exception handlers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SuccessResponse(BaseModel):
    """Acknowledgement for operations with no resource to return."""

    success: bool = Field(default=True, description="Operation success status")
    message: str = Field(description="Human-readable success message")
    data: Optional[Dict[str, Any]] = Field(default=None, description="Optional additional data")


class ErrorDetail(BaseModel):
    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human-readable error message")
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error envelope for exceptions that escape the route handlers."""

    error: ErrorDetail = Field(description="Error details")
    request_id: Optional[str] = Field(default=None, description="Request ID for tracking")
    timestamp: datetime = Field(default_factory=_utc_now, description="Error timestamp")
