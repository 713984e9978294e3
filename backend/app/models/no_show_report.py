"""No-show reports. Each active report is one strike against its user."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class NoShowStatus(str, Enum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


class NoShowReport(Base):
    """Strike record for a single booking. At most one per booking."""

    __tablename__ = "no_show_reports"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    user_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    reported_by = Column(String(26), ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=NoShowStatus.ACTIVE.value)
    reported_at = Column(UTCDateTime, nullable=False, default=utcnow)
    redeemed_at = Column(UTCDateTime, nullable=True)
    expired_at = Column(UTCDateTime, nullable=True)

    booking = relationship("Booking", back_populates="no_show_report")
    user = relationship("User", foreign_keys=[user_id])
    reporter = relationship("User", foreign_keys=[reported_by])

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'redeemed', 'expired')", name="ck_no_show_reports_status"
        ),
        Index("ix_no_show_reports_user_status_reported", "user_id", "status", "reported_at"),
    )

    def __repr__(self) -> str:
        return f"<NoShowReport booking={self.booking_id} status={self.status}>"
