# backend/app/schemas/trust.py
"""Trust system request and result schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class EligibilityResult(StandardizedModel):
    can_book: bool
    reason: Optional[str] = None
    weekly_count: int = 0
    weekly_limit: int = 0
    trust_level: int = 0
    booking_ban_until: Optional[datetime] = None


class NoShowReportRequest(StrictRequestModel):
    booking_id: str
    reason: Optional[str] = Field(None, max_length=1000)


class PenaltyResult(StandardizedModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    penalty_applied: Optional[str] = None
    cancelled_bookings: int = 0


class PromotionResult(StandardizedModel):
    promoted: bool = False
    new_level: Optional[int] = None
    strikes_redeemed: int = 0
    skipped: bool = False


class StrikeExpiryResult(StandardizedModel):
    expired: int


class CompletionBatchResult(StandardizedModel):
    processed: int
    promoted: int


class TrustSweepResult(StandardizedModel):
    """Scheduler sweep: completion processing followed by strike expiry."""

    processed: int
    promoted: int
    expired_strikes: int
    timestamp: datetime
