# backend/app/repositories/factory.py
"""
Repository Factory for the CourtBook booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .facility_repository import CourtRepository, FacilityRepository
    from .no_show_report_repository import NoShowReportRepository
    from .organization_repository import MemberRepository, OrganizationRepository
    from .slot_block_repository import SlotBlockRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services and tests can swap
    implementations in one place.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_no_show_report_repository(db: Session) -> "NoShowReportRepository":
        from .no_show_report_repository import NoShowReportRepository

        return NoShowReportRepository(db)

    @staticmethod
    def create_slot_block_repository(db: Session) -> "SlotBlockRepository":
        from .slot_block_repository import SlotBlockRepository

        return SlotBlockRepository(db)

    @staticmethod
    def create_facility_repository(db: Session) -> "FacilityRepository":
        from .facility_repository import FacilityRepository

        return FacilityRepository(db)

    @staticmethod
    def create_court_repository(db: Session) -> "CourtRepository":
        from .facility_repository import CourtRepository

        return CourtRepository(db)

    @staticmethod
    def create_organization_repository(db: Session) -> "OrganizationRepository":
        from .organization_repository import OrganizationRepository

        return OrganizationRepository(db)

    @staticmethod
    def create_member_repository(db: Session) -> "MemberRepository":
        from .organization_repository import MemberRepository

        return MemberRepository(db)
