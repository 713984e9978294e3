# backend/app/repositories/booking_repository.py
"""
Booking Repository for the CourtBook booking engine.

Owns every booking query the trust, abuse and conflict logic needs:
overlap lookups, recent-history counters, weekly quota counts, bulk
cancellation of future pending bookings and completion candidates.
"""

from datetime import datetime
import logging
from typing import List, Optional, Sequence

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from ..models.no_show_report import NoShowReport
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_with_user(self, booking_id: str) -> Optional[Booking]:
        return self._execute_first(
            self._build_query()
            .options(joinedload(Booking.user), joinedload(Booking.facility))
            .filter(Booking.id == booking_id)
        )

    # Conflict queries

    def find_overlapping(
        self,
        facility_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
        court_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Pending/confirmed bookings whose [start, end) overlaps the request.

        Scoped to the court when one is given, otherwise to the whole facility.
        """
        query = (
            self._build_query()
            .options(joinedload(Booking.user))
            .filter(
                Booking.facility_id == facility_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.start_time < end_time,
                Booking.end_time > start_time,
            )
        )
        if court_id:
            query = query.filter(Booking.court_id == court_id)
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return self._execute_query(query.order_by(Booking.start_time))

    # Abuse heuristics

    def count_created_since_for_email(
        self, email: str, since: datetime, status: Optional[str] = None
    ) -> int:
        query = (
            self.db.query(func.count(Booking.id))
            .join(User, User.id == Booking.user_id)
            .filter(User.email == email, Booking.created_at >= since)
        )
        if status:
            query = query.filter(Booking.status == status)
        return int(self._execute_scalar(query) or 0)

    def find_duplicate(
        self, facility_id: str, start_time: datetime, end_time: datetime, email: str
    ) -> Optional[Booking]:
        return self._execute_first(
            self._build_query()
            .join(User, User.id == Booking.user_id)
            .filter(
                Booking.facility_id == facility_id,
                Booking.start_time == start_time,
                Booking.end_time == end_time,
                User.email == email,
            )
        )

    # Trust system

    def count_active_created_since(self, user_id: str, since: datetime) -> int:
        """Pending/confirmed bookings the user created at or after since."""
        query = self.db.query(func.count(Booking.id)).filter(
            Booking.user_id == user_id,
            Booking.created_at >= since,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        return int(self._execute_scalar(query) or 0)

    def cancel_future_pending(self, user_id: str, now: datetime) -> int:
        """Cancel the user's pending bookings that start after now."""
        try:
            bookings = (
                self._build_query()
                .filter(
                    Booking.user_id == user_id,
                    Booking.status == BookingStatus.PENDING.value,
                    Booking.start_time > now,
                )
                .all()
            )
            for booking in bookings:
                booking.cancel()
            self.db.flush()
            return len(bookings)
        except SQLAlchemyError as e:
            self.logger.error(f"Error cancelling pending bookings for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to cancel pending bookings: {str(e)}")

    def find_completion_candidates(self, ended_before: datetime, limit: int) -> List[Booking]:
        """Confirmed bookings that ended before the cutoff and were never reported."""
        query = (
            self._build_query()
            .outerjoin(NoShowReport, NoShowReport.booking_id == Booking.id)
            .filter(
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.end_time < ended_before,
                NoShowReport.id.is_(None),
            )
            .order_by(Booking.end_time)
            .limit(limit)
        )
        return self._execute_query(query)

    # Occupancy

    def find_active_for_courts(
        self, court_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[Booking]:
        """Pending/confirmed bookings on the courts starting within [start, end]."""
        if not court_ids:
            return []
        query = self._build_query().filter(
            and_(
                Booking.court_id.in_(list(court_ids)),
                Booking.start_time >= start,
                Booking.start_time <= end,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        return self._execute_query(query)
