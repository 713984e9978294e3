# backend/tests/conftest.py
"""
Pytest configuration for the CourtBook booking engine.

Every test gets a fresh in-memory SQLite database with the full schema, a
fixed clock and factory fixtures for the structural entities. Route tests get
a TestClient whose get_db dependency yields the same session.
"""

import os

# Set testing mode BEFORE any app imports so the engine binds to SQLite
os.environ["is_testing"] = "true"
os.environ.setdefault("BOOKING_LOCK_BACKEND", "memory")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.dependencies.database import get_db
from app.core.booking_lock import InMemoryLockStore, set_lock_store
from app.core.enums import MemberRole, PlatformRole, TrustLevel
from app.database import Base
from app.main import app
from app.models import (
    Booking,
    BookingStatus,
    Court,
    Facility,
    FacilityMember,
    Member,
    Organization,
    SportCategory,
    User,
)
from app.services.organization_access_service import OrganizationAccessService

# Wednesday, noon UTC. Week start (Sunday 00:00) is 2025-06-08.
FIXED_NOW = datetime(2025, 6, 11, 12, 0, tzinfo=timezone.utc)

OPEN_EVERY_DAY = {
    day: {"open": "08:00", "close": "22:00", "closed": False}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture(autouse=True)
def lock_store():
    """Fresh process-wide booking lock store for every test."""
    store = InMemoryLockStore()
    set_lock_store(store)
    yield store
    set_lock_store(None)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(
        email: Optional[str] = None,
        name: str = "Maria Lopez",
        trust_level: int = int(TrustLevel.VERIFIED),
        email_verified: bool = True,
        role: str = PlatformRole.USER.value,
        **fields,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"customer{counter['n']}@example.com",
            name=name,
            trust_level=trust_level,
            email_verified=email_verified,
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_organization(db):
    def _make(name: str = "Riverside Sports Club") -> Organization:
        organization = Organization(name=name)
        db.add(organization)
        db.commit()
        return organization

    return _make


@pytest.fixture
def make_facility(db):
    def _make(
        organization: Optional[Organization],
        name: str = "Riverside Courts",
        working_hours: Optional[dict] = None,
    ) -> Facility:
        facility = Facility(
            organization_id=organization.id if organization else None,
            name=name,
            working_hours=OPEN_EVERY_DAY if working_hours is None else working_hours,
        )
        db.add(facility)
        db.commit()
        return facility

    return _make


@pytest.fixture
def make_court(db):
    def _make(
        facility: Facility,
        name: str = "Court 1",
        sport: str = "Tennis",
        time_slots: Iterable[str] = ("60min",),
        working_hours: Optional[dict] = None,
        is_active: bool = True,
        sport_category: Optional[SportCategory] = None,
    ) -> Court:
        category = sport_category
        if category is None:
            category = SportCategory(facility_id=facility.id, name=sport)
            db.add(category)
            db.flush()
        court = Court(
            sport_category_id=category.id,
            name=name,
            time_slots=list(time_slots),
            working_hours=working_hours,
            is_active=is_active,
        )
        db.add(court)
        db.commit()
        return court

    return _make


@pytest.fixture
def make_member(db):
    def _make(
        user: User,
        organization: Organization,
        role: MemberRole = MemberRole.OWNER,
        facility_ids: Iterable[str] = (),
    ) -> Member:
        member = Member(organization_id=organization.id, user_id=user.id, role=role)
        db.add(member)
        db.flush()
        for facility_id in facility_ids:
            db.add(FacilityMember(member_id=member.id, facility_id=facility_id))
        db.commit()
        return member

    return _make


@pytest.fixture
def make_booking(db):
    def _make(
        user: User,
        facility: Facility,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        court: Optional[Court] = None,
        status: BookingStatus = BookingStatus.CONFIRMED,
        created_at: datetime = FIXED_NOW - timedelta(days=7),
        total_price: Decimal = Decimal("20.00"),
    ) -> Booking:
        booking = Booking(
            facility_id=facility.id,
            court_id=court.id if court else None,
            user_id=user.id,
            start_time=start_time,
            end_time=end_time or start_time + timedelta(hours=1),
            status=status,
            created_at=created_at,
            total_price=total_price,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def venue(make_organization, make_facility, make_court):
    """One organization with one open-every-day facility and one court."""
    organization = make_organization()
    facility = make_facility(organization)
    court = make_court(facility)
    return organization, facility, court


@pytest.fixture
def resolve_actor(db):
    def _resolve(user: User):
        return OrganizationAccessService(db).resolve_actor(user.id)

    return _resolve


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"X-User-Id": user.id}

    return _headers
