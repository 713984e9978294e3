"""
Storage-level guard against double booking.

On PostgreSQL an exclusion constraint rejects two pending/confirmed bookings
on the same court whose [start_time, end_time) ranges overlap. Other dialects
have no equivalent; there the booking lock plus conflict check is all we have.
"""

from __future__ import annotations

import logging

from sqlalchemy import DDL, Table, event, text
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

BOOKING_OVERLAP_CONSTRAINT = "ex_bookings_court_no_overlap"

_CREATE_BTREE_GIST = DDL("CREATE EXTENSION IF NOT EXISTS btree_gist")

_ADD_OVERLAP_CONSTRAINT = DDL(
    f"ALTER TABLE %(table)s ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
    "EXCLUDE USING gist ("
    "court_id WITH =, "
    "tstzrange(start_time, end_time, '[)') WITH &&"
    ") WHERE (court_id IS NOT NULL AND status IN ('pending', 'confirmed'))"
)


def register_booking_overlap_constraint(bookings_table: Table) -> None:
    """Attach the exclusion constraint DDL to CREATE TABLE on PostgreSQL."""
    event.listen(
        bookings_table,
        "before_create",
        _CREATE_BTREE_GIST.execute_if(dialect="postgresql"),
    )
    event.listen(
        bookings_table,
        "after_create",
        _ADD_OVERLAP_CONSTRAINT.execute_if(dialect="postgresql"),
    )


def ensure_booking_overlap_constraint(connection: Connection) -> bool:
    """
    Install the constraint on an existing bookings table.

    Returns True when the constraint is present afterwards, False on dialects
    that cannot express it.
    """
    if connection.dialect.name != "postgresql":
        logger.info(
            "Skipping booking overlap constraint on dialect %s", connection.dialect.name
        )
        return False

    exists = connection.execute(
        text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
        {"name": BOOKING_OVERLAP_CONSTRAINT},
    ).scalar()
    if exists:
        return True

    connection.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
    connection.execute(
        text(
            f"ALTER TABLE bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
            "EXCLUDE USING gist ("
            "court_id WITH =, "
            "tstzrange(start_time, end_time, '[)') WITH &&"
            ") WHERE (court_id IS NOT NULL AND status IN ('pending', 'confirmed'))"
        )
    )
    logger.info("Installed booking overlap constraint %s", BOOKING_OVERLAP_CONSTRAINT)
    return True
