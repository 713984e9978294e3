# backend/app/models/facility.py
"""
Structural entities: facilities, sport categories and courts.

The engine reads these for working hours and slot granularity and never
mutates them. working_hours is a per-weekday map:
{"monday": {"open": "08:00", "close": "22:00", "closed": false}, ...}
"""

from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base
from .types import JSONDocument, UTCDateTime


class Facility(Base):
    __tablename__ = "facilities"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    organization_id = Column(
        String(26), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    working_hours = Column(JSONDocument, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="facilities")
    sport_categories = relationship(
        "SportCategory", back_populates="facility", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Facility {self.name}>"


class SportCategory(Base):
    __tablename__ = "sport_categories"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    facility_id = Column(
        String(26), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)

    facility = relationship("Facility", back_populates="sport_categories")
    courts = relationship("Court", back_populates="sport_category", cascade="all, delete-orphan")


class Court(Base):
    """A bookable court. working_hours overrides the facility's when set."""

    __tablename__ = "courts"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    sport_category_id = Column(
        String(26), ForeignKey("sport_categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    working_hours = Column(JSONDocument, nullable=True)
    time_slots = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    sport_category = relationship("SportCategory", back_populates="courts")

    @property
    def facility(self):
        return self.sport_category.facility if self.sport_category else None

    @property
    def organization_id(self):
        facility = self.facility
        return facility.organization_id if facility else None

    def __repr__(self) -> str:
        return f"<Court {self.name}>"
