# backend/app/models/user.py
"""
User model for the CourtBook booking engine.

Users carry the trust-system state that gates booking: trust level, weekly
quota, strike counters and ban fields. Authentication lives upstream; the
engine only reads identity and mutates trust fields.
"""

import logging
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import PlatformRole, TrustLevel, weekly_limit_for
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class User(Base):
    """
    Customer or staff account with trust-system state.

    Attributes:
        role: Platform role, "user" or "admin"
        trust_level: 0 (unverified) to 3 (established)
        weekly_booking_limit: Tier default unless overridden by a penalty
        active_strikes: Count of active no-show reports
        successful_bookings: Cumulative completed bookings without a report
        booking_ban_until: Temporary booking ban end, if any
        banned: Hard suspension flag
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=PlatformRole.USER.value)
    email_verified = Column(Boolean, nullable=False, default=False)

    trust_level = Column(Integer, nullable=False, default=int(TrustLevel.UNVERIFIED))
    weekly_booking_limit = Column(Integer, nullable=False, default=0)
    active_strikes = Column(Integer, nullable=False, default=0)
    last_strike_at = Column(UTCDateTime, nullable=True)
    successful_bookings = Column(Integer, nullable=False, default=0)
    booking_ban_until = Column(UTCDateTime, nullable=True)
    banned = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    memberships = relationship("Member", back_populates="user", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="user")

    __table_args__ = (
        CheckConstraint("trust_level BETWEEN 0 AND 3", name="ck_users_trust_level_range"),
        CheckConstraint("active_strikes >= 0", name="ck_users_active_strikes_non_negative"),
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    def __init__(self, **kwargs: Any) -> None:
        # Keep the quota aligned with the tier unless the caller overrides it
        if "weekly_booking_limit" not in kwargs and "trust_level" in kwargs:
            kwargs["weekly_booking_limit"] = weekly_limit_for(kwargs["trust_level"])
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<User {self.email} level={self.trust_level} strikes={self.active_strikes}>"

    @property
    def is_platform_admin(self) -> bool:
        return self.role == PlatformRole.ADMIN.value
