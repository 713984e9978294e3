# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Services are
request-scoped: each one wraps the request's database session.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.abuse_detector import AbuseDetector
from ...services.booking_service import BookingService
from ...services.booking_validator import BookingValidator
from ...services.conflict_resolver import ConflictResolver
from ...services.occupancy_service import OccupancyService
from ...services.organization_access_service import OrganizationAccessService
from ...services.slot_block_service import SlotBlockService
from ...services.trust_service import TrustService
from .database import get_db

logger = logging.getLogger(__name__)


def get_organization_access_service(db: Session = Depends(get_db)) -> OrganizationAccessService:
    return OrganizationAccessService(db)


def get_booking_validator(db: Session = Depends(get_db)) -> BookingValidator:
    return BookingValidator(db)


def get_abuse_detector(db: Session = Depends(get_db)) -> AbuseDetector:
    return AbuseDetector(db)


def get_conflict_resolver(
    db: Session = Depends(get_db),
    validator: BookingValidator = Depends(get_booking_validator),
) -> ConflictResolver:
    return ConflictResolver(db, validator=validator)


def get_trust_service(db: Session = Depends(get_db)) -> TrustService:
    return TrustService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """
    Get booking intake service.

    The booking lock store is resolved from settings on first use and shared
    by every request in the process.
    """
    return BookingService(db)


def get_slot_block_service(
    db: Session = Depends(get_db),
    access_service: OrganizationAccessService = Depends(get_organization_access_service),
) -> SlotBlockService:
    return SlotBlockService(db, access_service=access_service)


def get_occupancy_service(
    db: Session = Depends(get_db),
    access_service: OrganizationAccessService = Depends(get_organization_access_service),
) -> OccupancyService:
    return OccupancyService(db, access_service=access_service)
