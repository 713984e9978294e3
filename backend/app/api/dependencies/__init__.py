# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_actor, require_platform_admin, verify_cron_secret
from .database import get_db
from .services import (
    get_abuse_detector,
    get_booking_service,
    get_booking_validator,
    get_conflict_resolver,
    get_occupancy_service,
    get_organization_access_service,
    get_slot_block_service,
    get_trust_service,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_platform_admin",
    "verify_cron_secret",
    # Database
    "get_db",
    # Services
    "get_abuse_detector",
    "get_booking_service",
    "get_booking_validator",
    "get_conflict_resolver",
    "get_occupancy_service",
    "get_organization_access_service",
    "get_slot_block_service",
    "get_trust_service",
]
