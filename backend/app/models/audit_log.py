# backend/app/models/audit_log.py
"""
Audit trail for booking lifecycle transitions.

Rows are write-only from the engine's perspective; readers live in the admin
surface outside this service.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import Column, Index, String
import ulid

from app.database import Base

from .types import JSONDocument, UTCDateTime, utcnow


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    entity_type = Column(String(50), nullable=False, default="booking")
    entity_id = Column(String(64), nullable=False)
    action = Column(String(30), nullable=False)
    severity = Column(String(20), nullable=False, default="low")
    actor_id = Column(String(26), nullable=True)
    actor_role = Column(String(30), nullable=True)
    occurred_at = Column(UTCDateTime, nullable=False, default=utcnow)
    details = Column(JSONDocument, nullable=True)

    __table_args__ = (Index("ix_audit_log_entity", "entity_type", "entity_id"),)

    @classmethod
    def from_event(
        cls,
        entity_id: str,
        action: str,
        severity: str,
        actor: Any | None,
        details: Mapping[str, Any] | None,
        entity_type: str = "booking",
    ) -> "AuditLog":
        """Factory helper to build an AuditLog row from a lifecycle event."""
        actor_id: str | None = None
        actor_role: str | None = None

        if actor is not None:
            if isinstance(actor, Mapping):
                actor_id = _extract_value(actor, ("id", "actor_id", "user_id"))
                role_value = _extract_value(actor, ("role", "actor_role"))
            else:
                actor_id = _first_attr(actor, ("user_id", "id"))
                role_value = _first_attr(actor, ("role", "actor_role"))
            actor_role = str(role_value) if role_value is not None else None

        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            severity=severity,
            actor_id=actor_id,
            actor_role=actor_role,
            details=dict(details) if details is not None else None,
        )


def _first_attr(obj: Any, names: tuple[str, ...]) -> Any | None:
    for name in names:
        if hasattr(obj, name):
            value = getattr(obj, name)
            if value is not None:
                return value
    return None


def _extract_value(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any | None:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None
