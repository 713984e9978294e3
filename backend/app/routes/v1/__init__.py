# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import admin, bookings, occupancy, organizations, slot_blocks, trust

__all__ = [
    "admin",
    "bookings",
    "occupancy",
    "organizations",
    "slot_blocks",
    "trust",
]
