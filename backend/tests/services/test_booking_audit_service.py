from __future__ import annotations

from sqlalchemy.exc import OperationalError

from app.core.enums import AuditAction, AuditSeverity
from app.models import AuditLog
from app.principal import Actor
from app.services.booking_audit_service import BookingAuditService


def test_log_event_persists_entry(db, clock, now):
    service = BookingAuditService(db, clock=clock)
    actor = Actor(user_id="01J0000000000000000000USER", email="maria@example.com")

    entry = service.log_event(
        "01J00000000000000000BOOKNG",
        AuditAction.CANCELLED,
        actor=actor,
        severity=AuditSeverity.MEDIUM,
        details={"reason": "weather"},
    )

    db.expire_all()
    stored = db.query(AuditLog).filter(AuditLog.id == entry.id).one()
    assert stored.entity_type == "booking"
    assert stored.action == "cancelled"
    assert stored.severity == "medium"
    assert stored.actor_id == actor.user_id
    assert stored.actor_role == "user"
    assert stored.details == {"reason": "weather"}
    assert stored.occurred_at == now


def test_platform_admin_actor_role(db, clock):
    service = BookingAuditService(db, clock=clock)
    actor = Actor(user_id="01J00000000000000000ADMIN1", email="ops@example.com", is_platform_admin=True)

    entry = service.log_event("01J00000000000000000BOOKNG", AuditAction.CONFIRMED, actor=actor)

    assert entry.actor_role == "admin"


def test_system_event_has_no_actor(db, clock):
    entry = BookingAuditService(db, clock=clock).log_event(
        "01J00000000000000000BOOKNG", AuditAction.COMPLETED
    )

    assert entry.actor_id is None
    assert entry.severity == "low"


def test_write_failure_is_swallowed(db, clock, monkeypatch):
    service = BookingAuditService(db, clock=clock)

    def failing_commit():
        raise OperationalError("INSERT INTO audit_log", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)

    assert service.log_event("01J00000000000000000BOOKNG", AuditAction.CREATED) is None
