# backend/app/models/booking.py
"""
Booking model for the CourtBook booking engine.

A booking holds a half-open interval [start_time, end_time) on a facility and,
usually, a specific court. Pending and confirmed bookings on the same court must
never overlap; app.database.constraints installs the PostgreSQL exclusion
constraint that enforces it.
"""

from datetime import datetime
from enum import Enum
import logging
from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from ..database.constraints import register_booking_overlap_constraint
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no-show"


ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    facility_id = Column(String(26), ForeignKey("facilities.id"), nullable=False, index=True)
    court_id = Column(String(26), ForeignKey("courts.id"), nullable=True, index=True)
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    facility = relationship("Facility")
    court = relationship("Court")
    no_show_report = relationship("NoShowReport", back_populates="booking", uselist=False)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_time_order"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no-show')",
            name="ck_bookings_status",
        ),
        CheckConstraint("total_price >= 0", name="ck_bookings_price_non_negative"),
        Index("ix_bookings_facility_window", "facility_id", "start_time", "end_time"),
        Index("ix_bookings_court_window", "court_id", "start_time", "end_time"),
        Index("ix_bookings_user_created", "user_id", "created_at"),
    )

    def __init__(self, **kwargs: Any) -> None:
        status = kwargs.get("status")
        if isinstance(status, BookingStatus):
            kwargs["status"] = status.value
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} facility={self.facility_id} court={self.court_id} "
            f"{self.start_time}-{self.end_time} {self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def cancel(self) -> None:
        self.status = BookingStatus.CANCELLED.value

    def complete(self) -> None:
        self.status = BookingStatus.COMPLETED.value

    def mark_no_show(self) -> None:
        self.status = BookingStatus.NO_SHOW.value

    def has_ended(self, now: datetime) -> bool:
        return self.end_time <= now


register_booking_overlap_constraint(Booking.__table__)
