# backend/app/services/booking_audit_service.py
"""
Booking audit sink.

Writes one audit_log row per booking lifecycle transition. A failed audit
write is logged and never fails the business operation that triggered it.
"""

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import AuditAction, AuditSeverity
from ..core.exceptions import ServiceException
from ..models.audit_log import AuditLog
from ..principal import Actor
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


class BookingAuditService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)

    def log_event(
        self,
        booking_id: str,
        action: AuditAction,
        actor: Optional[Actor] = None,
        severity: AuditSeverity = AuditSeverity.LOW,
        details: Optional[Mapping[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Record a lifecycle event for a booking.

        Inside an open unit of work the row is committed with the caller's
        changes; otherwise it is committed on its own.
        """
        try:
            entry = AuditLog.from_event(
                entity_id=booking_id,
                action=action.value,
                severity=severity.value,
                actor=_actor_payload(actor),
                details=details,
            )
            entry.occurred_at = self.now()
            with self.transaction():
                self.db.add(entry)
            return entry
        except (ServiceException, SQLAlchemyError) as exc:
            self.logger.error(
                "Failed to write booking audit entry",
                extra={
                    "booking_id": booking_id,
                    "action": action.value,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return None


def _actor_payload(actor: Optional[Actor]) -> Optional[dict[str, Any]]:
    if actor is None:
        return None
    return {"user_id": actor.user_id, "role": "admin" if actor.is_platform_admin else "user"}
