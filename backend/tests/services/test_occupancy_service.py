from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.enums import MemberRole, OccupancyViewMode
from app.core.exceptions import ForbiddenException, NotFoundException
from app.models import BookingStatus
from app.schemas.occupancy import OccupancyQuery
from app.services.occupancy_service import OccupancyService

THURSDAY = date(2025, 6, 12)


def _at(day: date, hour: int) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db, clock):
    return OccupancyService(db, clock=clock)


@pytest.fixture
def owner(venue, make_user, make_member, resolve_actor):
    organization, _, _ = venue
    user = make_user(email="owner@riverside.example.com", name="Olivia Grant")
    make_member(user, organization, role=MemberRole.OWNER)
    return resolve_actor(user)


def _query(organization, start=THURSDAY, end=THURSDAY, **fields) -> OccupancyQuery:
    return OccupancyQuery(organization_id=organization.id, start_date=start, end_date=end, **fields)


class TestDailyOccupancy:
    def test_counts_active_bookings_per_day(
        self, service, venue, owner, make_user, make_booking
    ):
        organization, facility, court = venue
        customer = make_user()
        make_booking(customer, facility, _at(THURSDAY, 10), court=court, total_price=Decimal("25.50"))
        make_booking(
            customer, facility, _at(THURSDAY, 12), court=court,
            status=BookingStatus.PENDING, total_price=Decimal("20.00"),
        )
        make_booking(
            customer, facility, _at(THURSDAY, 14), court=court, status=BookingStatus.CANCELLED
        )

        courts = service.query(owner, _query(organization, end=THURSDAY + timedelta(days=1)))

        assert len(courts) == 1
        data = courts[0]
        assert data.court_id == court.id
        assert data.facility_name == "Riverside Courts"
        assert data.sport_category_name == "Tennis"
        assert data.hourly_occupancy is None
        thursday, friday = data.daily_occupancy
        assert thursday.date == THURSDAY
        assert thursday.bookings == 2
        assert thursday.revenue == 45.5
        assert thursday.available_slots == 14
        assert thursday.total_slots == 14
        assert thursday.occupancy == 14.29
        assert (friday.bookings, friday.occupancy, friday.revenue) == (0, 0.0, 0.0)

    def test_shortest_slot_duration_sets_availability(self, service, venue, owner, make_court):
        organization, facility, _ = venue
        make_court(facility, name="Court 2", time_slots=("90min", "30min"))

        courts = service.query(owner, _query(organization))

        by_name = {c.court_name: c.daily_occupancy[0].available_slots for c in courts}
        assert by_name == {"Court 1": 14, "Court 2": 28}

    def test_closed_day_has_no_availability(
        self, service, owner, venue, make_facility, make_court, make_user, make_booking
    ):
        organization, _, _ = venue
        hours = {"thursday": {"open": "08:00", "close": "22:00", "closed": True}}
        facility = make_facility(organization, name="Seasonal Courts", working_hours=hours)
        court = make_court(facility)
        make_booking(make_user(), facility, _at(THURSDAY, 10), court=court)

        courts = service.query(owner, _query(organization, facility_id=facility.id))

        day = courts[0].daily_occupancy[0]
        assert day.available_slots == 0
        assert day.bookings == 1
        assert day.occupancy == 0.0

    def test_court_hours_override_facility(self, service, venue, owner, make_court):
        organization, facility, _ = venue
        make_court(
            facility,
            name="Court 2",
            working_hours={"thursday": {"open": "18:00", "close": "21:00", "closed": False}},
        )

        courts = service.query(owner, _query(organization))

        by_name = {c.court_name: c.daily_occupancy[0].available_slots for c in courts}
        assert by_name["Court 2"] == 3

    def test_occupancy_is_capped_at_one_hundred(
        self, service, venue, owner, make_court, make_user, make_booking
    ):
        organization, facility, _ = venue
        court = make_court(
            facility,
            name="Court 2",
            working_hours={"thursday": {"open": "20:00", "close": "21:00", "closed": False}},
        )
        customer = make_user()
        for hour in (9, 11):
            make_booking(customer, facility, _at(THURSDAY, hour), court=court)

        courts = service.query(owner, _query(organization))

        day = next(c for c in courts if c.court_id == court.id).daily_occupancy[0]
        assert day.occupancy == 100.0

    def test_inactive_courts_and_category_filter(self, service, venue, owner, make_court):
        organization, facility, court = venue
        make_court(facility, name="Old Court", is_active=False)
        padel = make_court(facility, name="Padel 1", sport="Padel")

        all_courts = service.query(owner, _query(organization))
        padel_only = service.query(
            owner, _query(organization, sport_category_ids=[padel.sport_category_id])
        )

        assert {c.court_name for c in all_courts} == {"Court 1", "Padel 1"}
        assert [c.court_id for c in padel_only] == [padel.id]


class TestHourlyOccupancy:
    def test_booking_counts_from_start_hour_through_end_hour(
        self, service, venue, owner, make_user, make_booking
    ):
        organization, facility, court = venue
        make_booking(make_user(), facility, _at(THURSDAY, 10), court=court)

        courts = service.query(
            owner,
            _query(organization, end=THURSDAY + timedelta(days=1), view_mode=OccupancyViewMode.HOURS),
        )

        hourly = courts[0].hourly_occupancy
        assert courts[0].daily_occupancy is None
        assert [row.hour for row in hourly] == list(range(24))
        assert hourly[10].bookings == 1
        assert hourly[11].bookings == 1
        assert hourly[12].bookings == 0
        assert hourly[10].available_slots == 2
        assert hourly[10].occupancy == 50.0
        assert hourly[10].revenue == 20.0
        assert hourly[7].available_slots == 0
        assert hourly[21].available_slots == 2
        assert hourly[22].available_slots == 0


class TestAccess:
    def test_stranger_cannot_see_organization(self, service, venue, make_user, resolve_actor):
        organization, _, _ = venue

        with pytest.raises(NotFoundException):
            service.query(resolve_actor(make_user()), _query(organization))

    def test_member_sees_assigned_facilities_only(
        self, service, venue, make_facility, make_court, make_user, make_member, resolve_actor
    ):
        organization, facility, court = venue
        other_facility = make_facility(organization, name="Annex Courts")
        make_court(other_facility, name="Annex 1")
        desk = make_user(email="desk@riverside.example.com")
        make_member(desk, organization, role=MemberRole.MEMBER, facility_ids=[facility.id])
        actor = resolve_actor(desk)

        courts = service.query(actor, _query(organization))

        assert [c.court_id for c in courts] == [court.id]
        with pytest.raises(ForbiddenException):
            service.query(actor, _query(organization, facility_id=other_facility.id))

    def test_member_without_assignments_sees_nothing(
        self, service, venue, make_user, make_member, resolve_actor
    ):
        organization, _, _ = venue
        desk = make_user(email="desk@riverside.example.com")
        make_member(desk, organization, role=MemberRole.MEMBER)

        assert service.query(resolve_actor(desk), _query(organization)) == []

    def test_facility_outside_organization_is_forbidden(
        self, service, venue, owner, make_organization, make_facility
    ):
        organization, _, _ = venue
        foreign = make_facility(make_organization(name="Hilltop Racquet Club"))

        with pytest.raises(ForbiddenException):
            service.query(owner, _query(organization, facility_id=foreign.id))


def test_end_date_before_start_date_is_invalid(venue):
    organization, _, _ = venue

    with pytest.raises(ValueError):
        _query(organization, start=THURSDAY, end=THURSDAY - timedelta(days=1))
