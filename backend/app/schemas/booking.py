# backend/app/schemas/booking.py
"""
Booking schemas for the CourtBook booking engine.

Validation errors, abuse decisions and conflicts are returned as data, so most
of these are result shapes rather than error payloads.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from .base import Money, StandardizedModel, StrictRequestModel, UTCDatetime
from .trust import EligibilityResult


class BookingRequest(StrictRequestModel):
    """
    Candidate booking as submitted by a customer.

    Fields are optional so the validator can report missing ones as
    validation errors instead of a 422 from request parsing.
    """

    facility_id: Optional[str] = None
    court_id: Optional[str] = None
    start_time: Optional[UTCDatetime] = None
    end_time: Optional[UTCDatetime] = None
    email: Optional[str] = None
    name: Optional[str] = None
    exclude_booking_id: Optional[str] = Field(
        None, description="Booking being rescheduled; ignored in conflict checks"
    )


class ConflictQuery(StrictRequestModel):
    facility_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime
    court_id: Optional[str] = None
    exclude_booking_id: Optional[str] = None


class ValidationResult(StandardizedModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class BookingConflict(StandardizedModel):
    id: str
    start_time: datetime
    end_time: datetime
    status: str
    customer_name: str
    customer_email: Optional[str] = None


class AbuseResult(StandardizedModel):
    is_abuse: bool
    reason: str = ""
    severity: Literal["low", "medium", "high"] = "low"
    blocked: bool = False


class SuggestedTime(StandardizedModel):
    start_time: datetime
    end_time: datetime


class ResolutionResult(StandardizedModel):
    has_conflicts: bool
    conflicts: List[BookingConflict] = Field(default_factory=list)
    suggested_times: List[SuggestedTime] = Field(default_factory=list)


class BookingCreate(StrictRequestModel):
    """Booking intake request for the signed-in customer."""

    facility_id: str
    court_id: Optional[str] = None
    start_time: UTCDatetime
    end_time: UTCDatetime
    total_price: Money = Field(default=Money("0"))


class BookingResponse(StandardizedModel):
    id: str
    facility_id: str
    court_id: Optional[str] = None
    user_id: str
    start_time: datetime
    end_time: datetime
    status: str
    total_price: Money
    created_at: Optional[datetime] = None


class BlockedSlot(StandardizedModel):
    id: str
    court_id: str
    start_time: datetime
    end_time: datetime
    reason: str


class BookingIntakeResult(StandardizedModel):
    """
    Outcome of booking intake.

    When created is False, the first failing stage is the last one populated:
    eligibility, then validation, then abuse, then slot blocks, then resolution.
    """

    created: bool
    booking: Optional[BookingResponse] = None
    eligibility: Optional[EligibilityResult] = None
    validation: Optional[ValidationResult] = None
    abuse: Optional[AbuseResult] = None
    resolution: Optional[ResolutionResult] = None
    slot_blocks: List[BlockedSlot] = Field(default_factory=list)
