"""
Slot blocks: provider-defined windows during which a court cannot be booked.

A recurring rule is expanded into independent rows at creation time, so each
row can be deleted on its own.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class SlotBlockReason(str, Enum):
    TOURNAMENT = "tournament"
    MAINTENANCE = "maintenance"
    LESSONS = "lessons"
    RAIN = "rain"
    RAIN_OVERRIDE = "rain_override"
    OTHER = "other"


class RecurringType(str, Enum):
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    CUSTOM = "custom"


class SlotBlock(Base):
    __tablename__ = "slot_blocks"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    court_id = Column(
        String(26), ForeignKey("courts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    reason = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_type = Column(String(20), nullable=True)
    recurring_end_date = Column(Date, nullable=True)
    # Python weekday(), Monday == 0
    day_of_week = Column(Integer, nullable=True)
    created_by = Column(String(26), ForeignKey("users.id"), nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())

    court = relationship("Court")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_slot_blocks_time_order"),
        CheckConstraint(
            "reason IN ('tournament', 'maintenance', 'lessons', 'rain', 'rain_override', 'other')",
            name="ck_slot_blocks_reason",
        ),
        Index("ix_slot_blocks_court_window", "court_id", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<SlotBlock court={self.court_id} {self.start_time}-{self.end_time} {self.reason}>"
