"""
Database models for the CourtBook booking engine.

The models are organized by functionality:
- Users and trust state
- Organizations, members and facility assignments
- Facilities, sport categories and courts
- Bookings, no-show reports and slot blocks
- Audit trail
"""

from .audit_log import AuditLog
from .booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus
from .facility import Court, Facility, SportCategory
from .no_show_report import NoShowReport, NoShowStatus
from .organization import FacilityMember, Member, Organization
from .slot_block import RecurringType, SlotBlock, SlotBlockReason
from .user import User

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "AuditLog",
    "Booking",
    "BookingStatus",
    "Court",
    "Facility",
    "FacilityMember",
    "Member",
    "NoShowReport",
    "NoShowStatus",
    "Organization",
    "RecurringType",
    "SlotBlock",
    "SlotBlockReason",
    "SportCategory",
    "User",
]
