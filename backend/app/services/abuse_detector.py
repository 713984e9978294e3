# backend/app/services/abuse_detector.py
"""
Abuse Detector for the CourtBook booking engine.

Ordered heuristics over a booking request. The first rule that fires decides
the outcome; later rules are not evaluated.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Mapping, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    ABUSE_CANCELLATION_LIMIT,
    ABUSE_CANCELLATION_WINDOW,
    ABUSE_VELOCITY_LIMIT,
    ABUSE_VELOCITY_WINDOW,
    BUSINESS_DAY_END_HOUR,
    BUSINESS_DAY_START_HOUR,
    DISPOSABLE_EMAILS,
    SUSPICIOUS_NAME_TOKENS,
)
from ..core.enums import AbuseSeverity
from ..models.booking import BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import AbuseResult, BookingRequest
from ..utils.time_windows import to_local
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RequestContext:
    """Caller fingerprint used for abuse logging."""

    client_ip: str = UNKNOWN_CLIENT
    user_agent: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RequestContext":
        return cls(client_ip=client_ip_from_headers(headers), user_agent=headers.get("user-agent"))


def client_ip_from_headers(headers: Mapping[str, str]) -> str:
    """First hop of x-forwarded-for, then x-real-ip, then cf-connecting-ip."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    return UNKNOWN_CLIENT


class AbuseDetector(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("detect_abuse")
    def detect(self, context: RequestContext, data: BookingRequest) -> AbuseResult:
        rule, result = self._evaluate(data)
        prometheus_metrics.record_abuse_decision(rule, result.blocked)
        if result.is_abuse:
            self.logger.warning(
                "Booking abuse detected",
                extra={
                    "rule": rule,
                    "severity": result.severity,
                    "blocked": result.blocked,
                    "client_ip": context.client_ip,
                    "user_agent": context.user_agent,
                    "facility_id": data.facility_id,
                },
            )
        return result

    def _evaluate(self, data: BookingRequest) -> tuple[str, AbuseResult]:
        now = self.now()
        email = data.email or ""

        if email:
            recent = self.booking_repository.count_created_since_for_email(
                email, now - ABUSE_VELOCITY_WINDOW
            )
            if recent >= ABUSE_VELOCITY_LIMIT:
                return "velocity", _abuse(
                    "Too many bookings in the last hour", AbuseSeverity.HIGH, blocked=True
                )

        if data.facility_id and data.start_time and data.end_time and email:
            duplicate = self.booking_repository.find_duplicate(
                data.facility_id, data.start_time, data.end_time, email
            )
            if duplicate is not None:
                return "duplicate", _abuse(
                    "Duplicate booking detected", AbuseSeverity.MEDIUM, blocked=True
                )

        if email:
            cancelled = self.booking_repository.count_created_since_for_email(
                email,
                now - ABUSE_CANCELLATION_WINDOW,
                status=BookingStatus.CANCELLED.value,
            )
            if cancelled >= ABUSE_CANCELLATION_LIMIT:
                return "cancellations", _abuse(
                    "High cancellation rate detected", AbuseSeverity.MEDIUM
                )

        if data.start_time and _outside_business_hours(data.start_time):
            return "unusual_hours", _abuse(
                "Booking at unusual time (outside business hours)", AbuseSeverity.MEDIUM
            )

        if email.lower() in DISPOSABLE_EMAILS:
            return "disposable_email", _abuse(
                "Suspicious email pattern", AbuseSeverity.HIGH, blocked=True
            )

        name = (data.name or "").lower()
        if any(token in name for token in SUSPICIOUS_NAME_TOKENS):
            return "suspicious_name", _abuse("Suspicious name pattern", AbuseSeverity.MEDIUM)

        return "none", AbuseResult(is_abuse=False, reason="", severity="low", blocked=False)


def _outside_business_hours(start_time: datetime) -> bool:
    hour = to_local(start_time).hour
    return hour < BUSINESS_DAY_START_HOUR or hour > BUSINESS_DAY_END_HOUR


def _abuse(reason: str, severity: AbuseSeverity, blocked: bool = False) -> AbuseResult:
    return AbuseResult(is_abuse=True, reason=reason, severity=severity.value, blocked=blocked)
