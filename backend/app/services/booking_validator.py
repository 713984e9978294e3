# backend/app/services/booking_validator.py
"""
Booking Validator for the CourtBook booking engine.

Stateless rule checks on a candidate booking plus the overlap query against
existing bookings. Every rule violation is collected and returned; nothing
here raises for bad input.
"""

from datetime import datetime
import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    BUSINESS_DAY_END_HOUR,
    BUSINESS_DAY_START_HOUR,
    MAX_BOOKING_DURATION,
    MAX_BOOKING_HORIZON,
    MIN_BOOKING_DURATION,
    MIN_LEAD_TIME,
)
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingConflict, ValidationResult
from ..utils.time_windows import is_weekend, to_local
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\sÀ-ſ]+$")


class BookingValidator(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.facility_repository = RepositoryFactory.create_facility_repository(db)

    @BaseService.measure_operation("validate_booking")
    def validate(
        self,
        facility_id: Optional[str],
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        email: Optional[str],
        name: Optional[str],
    ) -> ValidationResult:
        """
        Check a candidate booking against timing, format and facility rules.

        Missing required fields short-circuit with errors only. Otherwise all
        violations are collected. Warnings never make a booking invalid.
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not facility_id:
            errors.append("Facility ID is required")
        if not start_time:
            errors.append("Start time is required")
        if not end_time:
            errors.append("End time is required")
        if not email:
            errors.append("Email is required")
        if not name:
            errors.append("Name is required")

        if errors:
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

        now = self.now()
        if start_time < now + MIN_LEAD_TIME:
            errors.append("Booking must be at least 30 minutes in advance")
        if start_time > now + MAX_BOOKING_HORIZON:
            errors.append("Booking cannot be more than 1 year in advance")
        if start_time >= end_time:
            errors.append("End time must be after start time")

        duration = end_time - start_time
        if duration < MIN_BOOKING_DURATION:
            errors.append("Minimum booking duration is 30 minutes")
        if duration > MAX_BOOKING_DURATION:
            errors.append("Maximum booking duration is 8 hours")

        start_hour = to_local(start_time).hour
        end_hour = to_local(end_time).hour
        if start_hour < BUSINESS_DAY_START_HOUR or end_hour > BUSINESS_DAY_END_HOUR:
            warnings.append("Booking is outside normal business hours (6 AM - 10 PM)")
        if is_weekend(start_time):
            warnings.append("Booking is on a weekend")

        if not EMAIL_PATTERN.fullmatch(email):
            errors.append("Invalid email format")

        if len(name) < 2:
            errors.append("Name must be at least 2 characters long")
        if not NAME_PATTERN.fullmatch(name):
            errors.append("Name contains invalid characters")

        facility = self.facility_repository.get_by_id(facility_id)
        if facility is None:
            errors.append("Facility not found")
        elif facility.organization_id is None or facility.organization is None:
            errors.append("Facility organization not found")

        if errors:
            self.logger.info(
                "Booking validation failed",
                extra={"facility_id": facility_id, "error_count": len(errors)},
            )
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    @BaseService.measure_operation("check_conflicts")
    def check_conflicts(
        self,
        facility_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
        court_id: Optional[str] = None,
    ) -> List[BookingConflict]:
        """Pending/confirmed bookings overlapping [start_time, end_time)."""
        bookings = self.booking_repository.find_overlapping(
            facility_id,
            start_time,
            end_time,
            exclude_booking_id=exclude_booking_id,
            court_id=court_id,
        )
        return [
            BookingConflict(
                id=booking.id,
                start_time=booking.start_time,
                end_time=booking.end_time,
                status=booking.status,
                customer_name=(booking.user.name if booking.user else None) or "Unknown",
                customer_email=booking.user.email if booking.user else None,
            )
            for booking in bookings
        ]
