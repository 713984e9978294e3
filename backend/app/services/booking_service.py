# backend/app/services/booking_service.py
"""
Booking Service for the CourtBook booking engine.

Booking intake pipeline for a signed-in customer:
1. Trust eligibility (bans, verification, weekly quota)
2. Rule validation
3. Abuse heuristics
4. Under the booking lock: slot blocks, conflict check, suggestions on
   conflict, create

A rejected stage short-circuits and is reported in the BookingIntakeResult.
The overlap constraint in the database stays authoritative; the lock only
narrows the window between check and insert.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.booking_lock import BookingLockStore, booking_lock, booking_lock_key
from ..core.enums import AuditAction
from ..core.exceptions import BookingConflictException, NotFoundException, RepositoryException
from ..database.constraints import BOOKING_OVERLAP_CONSTRAINT
from ..models.booking import Booking, BookingStatus
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import (
    BlockedSlot,
    BookingCreate,
    BookingIntakeResult,
    BookingRequest,
    BookingResponse,
    ValidationResult,
)
from .abuse_detector import AbuseDetector, RequestContext
from .base import BaseService, Clock
from .booking_audit_service import BookingAuditService
from .booking_validator import BookingValidator
from .conflict_resolver import ConflictResolver
from .trust_service import TrustService

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        lock_store: Optional[BookingLockStore] = None,
    ):
        super().__init__(db, clock)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.slot_block_repository = RepositoryFactory.create_slot_block_repository(db)
        self.trust_service = TrustService(db, clock=clock)
        self.validator = BookingValidator(db, clock=clock)
        self.abuse_detector = AbuseDetector(db, clock=clock)
        self.conflict_resolver = ConflictResolver(db, validator=self.validator, clock=clock)
        self.audit_service = BookingAuditService(db, clock=clock)
        self.lock_store = lock_store

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        actor: Actor,
        payload: BookingCreate,
        context: Optional[RequestContext] = None,
    ) -> BookingIntakeResult:
        """
        Run the intake pipeline and create a pending booking when it passes.

        Raises:
            NotFoundException: The actor's user record is gone
            LockAcquisitionException: Another request holds the slot lock
            BookingConflictException: The database rejected an overlapping insert
        """
        context = context or RequestContext()

        eligibility = self.trust_service.can_user_book(actor.user_id)
        if not eligibility.can_book:
            self.logger.info(
                "Booking rejected by trust eligibility",
                extra={"user_id": actor.user_id, "reason": eligibility.reason},
            )
            return BookingIntakeResult(created=False, eligibility=eligibility)

        user = self.user_repository.get_by_id(actor.user_id)
        if user is None:
            raise NotFoundException("User not found")

        validation = self.validator.validate(
            payload.facility_id, payload.start_time, payload.end_time, user.email, user.name
        )
        validation = self._validate_court(payload, validation)
        if not validation.is_valid:
            return BookingIntakeResult(
                created=False, eligibility=eligibility, validation=validation
            )

        abuse = self.abuse_detector.detect(
            context,
            BookingRequest(
                facility_id=payload.facility_id,
                court_id=payload.court_id,
                start_time=payload.start_time,
                end_time=payload.end_time,
                email=user.email,
                name=user.name,
            ),
        )
        if abuse.blocked:
            return BookingIntakeResult(
                created=False, eligibility=eligibility, validation=validation, abuse=abuse
            )

        key = booking_lock_key(payload.facility_id, payload.start_time, payload.court_id)
        with booking_lock(key, store=self.lock_store):
            blocks = self.slot_block_repository.find_overlapping(
                payload.start_time,
                payload.end_time,
                court_id=payload.court_id,
                facility_id=payload.facility_id,
            )
            if blocks:
                self.logger.info(
                    "Booking rejected by slot block",
                    extra={"user_id": actor.user_id, "block_id": blocks[0].id},
                )
                return BookingIntakeResult(
                    created=False,
                    eligibility=eligibility,
                    validation=validation,
                    abuse=abuse,
                    slot_blocks=[BlockedSlot.model_validate(block) for block in blocks],
                )
            resolution = self.conflict_resolver.resolve(
                payload.facility_id,
                payload.start_time,
                payload.end_time,
                court_id=payload.court_id,
            )
            if resolution.has_conflicts:
                return BookingIntakeResult(
                    created=False,
                    eligibility=eligibility,
                    validation=validation,
                    abuse=abuse,
                    resolution=resolution,
                )
            booking = self._insert_booking(actor, payload)

        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            user_id=actor.user_id,
            facility_id=payload.facility_id,
            court_id=payload.court_id,
        )
        return BookingIntakeResult(
            created=True,
            booking=BookingResponse.model_validate(booking),
            eligibility=eligibility,
            validation=validation,
            abuse=abuse,
            resolution=resolution,
        )

    def _validate_court(
        self, payload: BookingCreate, validation: ValidationResult
    ) -> ValidationResult:
        if not payload.court_id:
            return validation
        courts = self.court_repository.get_many_with_facility([payload.court_id])
        court = courts[0] if courts else None
        if court is not None and court.facility is not None and (
            court.facility.id == payload.facility_id and court.is_active
        ):
            return validation
        errors = [*validation.errors, "Court not found at this facility"]
        return ValidationResult(is_valid=False, errors=errors, warnings=validation.warnings)

    def _insert_booking(self, actor: Actor, payload: BookingCreate) -> Booking:
        try:
            with self.transaction():
                booking = self.booking_repository.create(
                    facility_id=payload.facility_id,
                    court_id=payload.court_id,
                    user_id=actor.user_id,
                    start_time=payload.start_time,
                    end_time=payload.end_time,
                    status=BookingStatus.PENDING.value,
                    total_price=payload.total_price,
                    created_at=self.now(),
                )
                self.audit_service.log_event(
                    booking.id,
                    AuditAction.CREATED,
                    actor=actor,
                    details={
                        "facility_id": payload.facility_id,
                        "court_id": payload.court_id,
                        "start_time": payload.start_time.isoformat(),
                        "end_time": payload.end_time.isoformat(),
                    },
                )
        except RepositoryException as exc:
            if BOOKING_OVERLAP_CONSTRAINT in str(exc):
                raise BookingConflictException(
                    details={"facility_id": payload.facility_id, "court_id": payload.court_id}
                ) from exc
            raise
        return booking
