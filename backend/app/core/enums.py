# backend/app/core/enums.py
"""
Core enums for the CourtBook booking engine.

Persisted enums inherit from (str, Enum) so ORM values and raw SQL values stay
identical. Trust levels are ordered, so they are an IntEnum.
"""

from enum import Enum, IntEnum


class TrustLevel(IntEnum):
    """Tiered booking privilege. Higher levels unlock larger weekly quotas."""

    UNVERIFIED = 0
    VERIFIED = 1
    TRUSTED = 2
    ESTABLISHED = 3


WEEKLY_LIMITS: dict[TrustLevel, int] = {
    TrustLevel.UNVERIFIED: 0,
    TrustLevel.VERIFIED: 1,
    TrustLevel.TRUSTED: 3,
    TrustLevel.ESTABLISHED: 5,
}


def weekly_limit_for(level: int) -> int:
    """Return the default weekly booking quota for a trust level."""
    return WEEKLY_LIMITS[TrustLevel(level)]


class PlatformRole(str, Enum):
    """
    Platform-wide role stored on the user.

    ADMIN is the platform operator. It is unrelated to organization membership.
    """

    USER = "user"
    ADMIN = "admin"


class MemberRole(str, Enum):
    """
    Role of a user inside an organization.

    There is no "admin" member role; platform administration is
    expressed by PlatformRole.ADMIN only.
    """

    OWNER = "owner"
    MEMBER = "member"


class AuditAction(str, Enum):
    """Booking lifecycle transitions recorded in the audit log."""

    CREATED = "created"
    UPDATED = "updated"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    DELETED = "deleted"


class AuditSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AbuseSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OccupancyViewMode(str, Enum):
    DAYS = "days"
    HOURS = "hours"
