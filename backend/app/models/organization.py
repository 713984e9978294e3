# backend/app/models/organization.py
"""
Provider organizations and their staff.

Member.role is "owner" or "member" only. Platform administration is a user
role, never a membership role, and the check constraint below keeps it that way.
"""

from typing import Any

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import MemberRole
from ..database import Base
from .types import UTCDateTime


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    members = relationship("Member", back_populates="organization", cascade="all, delete-orphan")
    facilities = relationship("Facility", back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"


class Member(Base):
    """A user's membership in an organization."""

    __tablename__ = "members"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    organization_id = Column(
        String(26), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=MemberRole.MEMBER.value)
    created_at = Column(UTCDateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")
    facility_assignments = relationship(
        "FacilityMember", back_populates="member", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_members_org_user"),
        CheckConstraint("role IN ('owner', 'member')", name="ck_members_role"),
    )

    def __init__(self, **kwargs: Any) -> None:
        role = kwargs.get("role")
        if isinstance(role, MemberRole):
            kwargs["role"] = role.value
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Member user={self.user_id} org={self.organization_id} role={self.role}>"


class FacilityMember(Base):
    """Facility assignment for a non-owner member."""

    __tablename__ = "facility_members"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    member_id = Column(String(26), ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    facility_id = Column(
        String(26), ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True
    )

    member = relationship("Member", back_populates="facility_assignments")
    facility = relationship("Facility")

    __table_args__ = (UniqueConstraint("member_id", "facility_id", name="uq_facility_members"),)
