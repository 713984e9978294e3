# backend/app/services/trust_service.py
"""
Trust Service for the CourtBook booking engine.

Owns the per-user trust level and strike state machine:
- Eligibility checks (bans, verification, weekly quota)
- No-show reports and their penalties
- Promotion and strike redemption after a completed booking
- Expiry of old strikes
- The periodic completion sweep

Trust level only goes up in process_booking_completion and only goes down in
report_no_show. Every state change runs in a single unit of work.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    BAN_DURATION,
    COMPLETION_BATCH_SIZE,
    COMPLETION_GRACE_PERIOD,
    ESTABLISHED_PENALTY_WEEKLY_LIMIT,
    ESTABLISHED_PROMOTION_THRESHOLD,
    NO_SHOW_REPORTING_WINDOW,
    RECENT_STRIKE_WINDOW,
    STRIKE_EXPIRY,
    STRIKES_TO_REDEEM,
    TRUSTED_DEMOTION_WEEKLY_LIMIT,
    TRUSTED_PROMOTION_THRESHOLD,
)
from ..core.enums import AuditAction, AuditSeverity, TrustLevel, weekly_limit_for
from ..core.exceptions import RepositoryException, ServiceException
from ..models.booking import Booking, BookingStatus
from ..models.no_show_report import NoShowStatus
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.trust import (
    CompletionBatchResult,
    EligibilityResult,
    PenaltyResult,
    PromotionResult,
)
from ..utils.time_windows import to_local, week_start
from .base import BaseService, Clock
from .booking_audit_service import BookingAuditService

logger = logging.getLogger(__name__)

BAN_PENALTY = "7-day booking ban applied, pending bookings cancelled"
DEMOTE_TO_VERIFIED_PENALTY = (
    "Demoted to Level 1, weekly limit reduced to 1, pending bookings cancelled"
)
WARNING_PENALTY = "Warning issued, weekly limit reduced to 3"
DEMOTE_TO_TRUSTED_PENALTY = "Demoted to Level 2, weekly limit is 3"
STRIKE_ONLY_PENALTY = "Strike recorded"


@dataclass(frozen=True)
class _Penalty:
    kind: str
    description: str
    cancelled_bookings: int = 0


class TrustService(BaseService):
    """Trust level, strike and booking-quota rules for customers."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.report_repository = RepositoryFactory.create_no_show_report_repository(db)
        self.member_repository = RepositoryFactory.create_member_repository(db)
        self.audit_service = BookingAuditService(db, clock=clock)

    # Eligibility

    @BaseService.measure_operation("can_user_book")
    def can_user_book(self, user_id: str) -> EligibilityResult:
        """
        Decide whether a user may create another booking right now.

        Checks run in order: account exists, not suspended, no active booking
        ban, email verified, weekly quota not exhausted. The quota counts
        pending/confirmed bookings created since Sunday 00:00 on the platform
        clock.
        """
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            return EligibilityResult(can_book=False, reason="User not found")

        if user.banned:
            return EligibilityResult(
                can_book=False,
                reason="Your account has been suspended",
                trust_level=user.trust_level,
            )

        now = self.now()
        if user.booking_ban_until is not None and user.booking_ban_until > now:
            ban_end = to_local(user.booking_ban_until).strftime("%Y-%m-%d")
            return EligibilityResult(
                can_book=False,
                reason=f"You are banned from booking until {ban_end}",
                weekly_limit=user.weekly_booking_limit,
                trust_level=user.trust_level,
                booking_ban_until=user.booking_ban_until,
            )

        if not user.email_verified:
            return EligibilityResult(
                can_book=False,
                reason="Please verify your email to make bookings",
            )

        weekly_count = self.booking_repository.count_active_created_since(
            user.id, week_start(now)
        )
        if weekly_count >= user.weekly_booking_limit:
            return EligibilityResult(
                can_book=False,
                reason=(
                    f"You've reached your weekly limit of {user.weekly_booking_limit} booking(s)"
                ),
                weekly_count=weekly_count,
                weekly_limit=user.weekly_booking_limit,
                trust_level=user.trust_level,
            )

        return EligibilityResult(
            can_book=True,
            weekly_count=weekly_count,
            weekly_limit=user.weekly_booking_limit,
            trust_level=user.trust_level,
        )

    # No-show reports

    @BaseService.measure_operation("report_no_show")
    def report_no_show(
        self, booking_id: str, reporter_id: str, reason: Optional[str] = None
    ) -> PenaltyResult:
        """
        File a no-show report for a booking and penalize its customer.

        Precondition failures are returned as an unsuccessful PenaltyResult.
        The report, the strike, the penalty and any cancellations commit
        together or not at all.
        """
        booking = self.booking_repository.get_with_user(booking_id)
        if booking is None:
            return _rejected("Booking not found", "BOOKING_NOT_FOUND")

        if self.report_repository.get_by_booking_id(booking_id) is not None:
            return _rejected("This booking has already been reported", "ALREADY_REPORTED")

        now = self.now()
        if now > booking.end_time + NO_SHOW_REPORTING_WINDOW:
            return _rejected(
                "Reporting window has expired. "
                "You can only report within 24 hours of the slot ending.",
                "REPORTING_WINDOW_EXPIRED",
            )

        if now < booking.end_time:
            return _rejected(
                "You can only report a no-show after the booking time has passed",
                "BOOKING_NOT_ENDED",
            )

        organization_id = booking.facility.organization_id if booking.facility else None
        if (
            organization_id is None
            or self.member_repository.get_membership(reporter_id, organization_id) is None
        ):
            return _rejected(
                "You are not authorized to report no-shows for this facility",
                "NOT_AUTHORIZED",
            )

        with self.transaction():
            user = self.user_repository.get_for_update(booking.user_id)
            if user is None:
                return _rejected("User not found", "USER_NOT_FOUND")
            previous_level = user.trust_level
            recent_strikes = self.report_repository.count_active_since(
                user.id, now - RECENT_STRIKE_WINDOW
            )

            self.report_repository.create(
                booking_id=booking.id,
                user_id=user.id,
                reported_by=reporter_id,
                reason=reason,
                status=NoShowStatus.ACTIVE.value,
                reported_at=now,
            )
            booking.mark_no_show()
            penalty = self._apply_penalty(user, now, recent_strikes)
            self.audit_service.log_event(
                booking.id,
                AuditAction.UPDATED,
                severity=AuditSeverity.HIGH,
                details={
                    "status": booking.status,
                    "reported_by": reporter_id,
                    "penalty": penalty.kind,
                    "previous_trust_level": previous_level,
                    "trust_level": user.trust_level,
                },
            )

        prometheus_metrics.record_no_show_penalty(previous_level, penalty.kind)
        self.logger.info(
            "No-show penalty applied",
            extra={
                "booking_id": booking_id,
                "user_id": booking.user_id,
                "penalty": penalty.kind,
                "cancelled_bookings": penalty.cancelled_bookings,
            },
        )
        return PenaltyResult(
            success=True,
            penalty_applied=penalty.description,
            cancelled_bookings=penalty.cancelled_bookings,
        )

    def _apply_penalty(self, user: User, now: datetime, recent_strikes: int) -> _Penalty:
        """Mutate the locked user for one new strike, according to their level."""
        user.active_strikes = (user.active_strikes or 0) + 1
        user.last_strike_at = now
        level = TrustLevel(user.trust_level)

        if level == TrustLevel.VERIFIED:
            user.booking_ban_until = now + BAN_DURATION
            return _Penalty("ban", BAN_PENALTY, self._cancel_future_pending(user, now))

        if level == TrustLevel.TRUSTED:
            user.trust_level = int(TrustLevel.VERIFIED)
            user.weekly_booking_limit = TRUSTED_DEMOTION_WEEKLY_LIMIT
            return _Penalty(
                "demotion", DEMOTE_TO_VERIFIED_PENALTY, self._cancel_future_pending(user, now)
            )

        if level == TrustLevel.ESTABLISHED:
            if recent_strikes == 0:
                user.weekly_booking_limit = ESTABLISHED_PENALTY_WEEKLY_LIMIT
                return _Penalty("warning", WARNING_PENALTY)
            if recent_strikes == 1:
                user.trust_level = int(TrustLevel.TRUSTED)
                user.weekly_booking_limit = ESTABLISHED_PENALTY_WEEKLY_LIMIT
                return _Penalty("demotion", DEMOTE_TO_TRUSTED_PENALTY)
            user.booking_ban_until = now + BAN_DURATION
            return _Penalty("ban", BAN_PENALTY, self._cancel_future_pending(user, now))

        self.logger.warning(
            "No-show reported for an unverified user; eligibility and penalty rules disagree",
            extra={"user_id": user.id},
        )
        return _Penalty("strike_only", STRIKE_ONLY_PENALTY)

    def _cancel_future_pending(self, user: User, now: datetime) -> int:
        return self.booking_repository.cancel_future_pending(user.id, now)

    # Promotion and redemption

    @BaseService.measure_operation("process_booking_completion")
    def process_booking_completion(self, booking_id: str) -> PromotionResult:
        """
        Credit a completed, unreported booking to its customer.

        Only a confirmed booking whose slot has ended is credited, and it is
        marked completed in the same unit of work, so repeated calls are
        skipped. Increments successful_bookings, promotes VERIFIED to TRUSTED
        at 1 and TRUSTED to ESTABLISHED at 3, and redeems one active strike
        (oldest first) for every 5 successful bookings.
        """
        now = self.now()
        booking = self.booking_repository.get_with_user(booking_id)
        if not self._is_creditable(booking, now):
            return PromotionResult(skipped=True)

        with self.transaction():
            user = self.user_repository.get_for_update(booking.user_id)
            if user is None:
                return PromotionResult(skipped=True)
            self.db.refresh(booking)
            if not self._is_creditable(booking, now):
                return PromotionResult(skipped=True)

            old_level = user.trust_level
            old_successful = user.successful_bookings or 0
            new_successful = old_successful + 1

            new_level = old_level
            if old_level == TrustLevel.VERIFIED and new_successful >= TRUSTED_PROMOTION_THRESHOLD:
                new_level = int(TrustLevel.TRUSTED)
            elif (
                old_level == TrustLevel.TRUSTED
                and new_successful >= ESTABLISHED_PROMOTION_THRESHOLD
            ):
                new_level = int(TrustLevel.ESTABLISHED)

            strikes_to_redeem = 0
            if (user.active_strikes or 0) > 0:
                earned = new_successful // STRIKES_TO_REDEEM - old_successful // STRIKES_TO_REDEEM
                strikes_to_redeem = min(earned, user.active_strikes)

            user.successful_bookings = new_successful
            if new_level != old_level:
                user.trust_level = new_level
                user.weekly_booking_limit = weekly_limit_for(new_level)

            redeemed = self._redeem_strikes(user, strikes_to_redeem)
            user.active_strikes = max(0, user.active_strikes - redeemed)

            booking.complete()
            self.audit_service.log_event(
                booking.id,
                AuditAction.COMPLETED,
                details={"promoted": new_level > old_level, "trust_level": new_level},
            )

        promoted = new_level > old_level
        if promoted:
            prometheus_metrics.record_promotion(new_level)
            self.logger.info(
                "User promoted",
                extra={"user_id": user.id, "old_level": old_level, "new_level": new_level},
            )
        return PromotionResult(promoted=promoted, new_level=new_level, strikes_redeemed=redeemed)

    def _is_creditable(self, booking: Optional[Booking], now: datetime) -> bool:
        if booking is None or booking.status != BookingStatus.CONFIRMED.value:
            return False
        if not booking.has_ended(now):
            return False
        return self.report_repository.get_by_booking_id(booking.id) is None

    def _redeem_strikes(self, user: User, count: int) -> int:
        if count <= 0:
            return 0
        now = self.now()
        reports = self.report_repository.oldest_active(user.id, count)
        for report in reports:
            report.status = NoShowStatus.REDEEMED.value
            report.redeemed_at = now
        return len(reports)

    # Maintenance

    @BaseService.measure_operation("expire_old_strikes")
    def expire_old_strikes(self) -> int:
        """Expire active reports older than 60 days and give the strikes back."""
        now = self.now()
        with self.transaction():
            reports = self.report_repository.active_reported_before(now - STRIKE_EXPIRY)
            if not reports:
                return 0

            per_user: Dict[str, int] = {}
            for report in reports:
                report.status = NoShowStatus.EXPIRED.value
                report.expired_at = now
                per_user[report.user_id] = per_user.get(report.user_id, 0) + 1
            self.user_repository.decrement_strikes(per_user)

        self.logger.info(
            "Expired old strikes",
            extra={"expired": len(reports), "users": len(per_user)},
        )
        return len(reports)

    @BaseService.measure_operation("process_completed_bookings")
    def process_completed_bookings(
        self, batch_size: int = COMPLETION_BATCH_SIZE
    ) -> CompletionBatchResult:
        """
        Complete confirmed bookings that ended more than the grace period ago.

        Each booking is credited and marked completed in its own unit of work,
        so one failure does not hold back the rest of the batch.
        """
        cutoff = self.now() - COMPLETION_GRACE_PERIOD
        candidates = self.booking_repository.find_completion_candidates(cutoff, batch_size)

        processed = 0
        promoted = 0
        for booking in candidates:
            try:
                result = self.process_booking_completion(booking.id)
            except (ServiceException, RepositoryException) as exc:
                self.logger.error(
                    "Failed to process completed booking",
                    extra={"booking_id": booking.id, "error": str(exc)},
                )
                continue
            if result.skipped:
                continue
            processed += 1
            if result.promoted:
                promoted += 1

        if processed:
            self.logger.info(
                "Processed completed bookings",
                extra={"processed": processed, "promoted": promoted},
            )
        return CompletionBatchResult(processed=processed, promoted=promoted)


def _rejected(error: str, error_code: str) -> PenaltyResult:
    return PenaltyResult(success=False, error=error, error_code=error_code)

