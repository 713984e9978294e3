from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.models import BookingStatus
from app.services.booking_validator import BookingValidator

THURSDAY_10 = datetime(2025, 6, 12, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def validator(db, clock):
    return BookingValidator(db, clock=clock)


class TestValidate:
    def test_valid_booking_has_no_errors_or_warnings(self, validator, venue):
        _, facility, _ = venue

        result = validator.validate(
            facility.id,
            THURSDAY_10,
            THURSDAY_10 + timedelta(hours=1),
            "maria@example.com",
            "Maria Lopez",
        )

        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_missing_fields_short_circuit(self, validator):
        result = validator.validate(None, None, None, "", None)

        assert result.is_valid is False
        assert result.errors == [
            "Facility ID is required",
            "Start time is required",
            "End time is required",
            "Email is required",
            "Name is required",
        ]
        assert result.warnings == []

    def test_lead_time_and_minimum_duration(self, validator, venue, now):
        _, facility, _ = venue
        start = now + timedelta(minutes=10)

        result = validator.validate(
            facility.id, start, start + timedelta(minutes=15), "maria@example.com", "Maria"
        )

        assert result.is_valid is False
        assert "Booking must be at least 30 minutes in advance" in result.errors
        assert "Minimum booking duration is 30 minutes" in result.errors

    def test_lead_time_boundary_is_allowed(self, validator, venue, now):
        _, facility, _ = venue
        start = now + timedelta(minutes=30)

        result = validator.validate(
            facility.id, start, start + timedelta(hours=1), "maria@example.com", "Maria"
        )

        assert "Booking must be at least 30 minutes in advance" not in result.errors

    def test_horizon_limit(self, validator, venue, now):
        _, facility, _ = venue
        start = now + timedelta(days=400)

        result = validator.validate(
            facility.id, start, start + timedelta(hours=1), "maria@example.com", "Maria"
        )

        assert result.errors == ["Booking cannot be more than 1 year in advance"]

    def test_end_before_start(self, validator, venue):
        _, facility, _ = venue

        result = validator.validate(
            facility.id,
            THURSDAY_10,
            THURSDAY_10 - timedelta(hours=1),
            "maria@example.com",
            "Maria",
        )

        assert "End time must be after start time" in result.errors
        assert "Minimum booking duration is 30 minutes" in result.errors

    def test_maximum_duration(self, validator, venue):
        _, facility, _ = venue

        result = validator.validate(
            facility.id,
            THURSDAY_10,
            THURSDAY_10 + timedelta(hours=9),
            "maria@example.com",
            "Maria",
        )

        assert result.errors == ["Maximum booking duration is 8 hours"]

    def test_early_weekend_booking_only_warns(self, validator, venue):
        _, facility, _ = venue
        saturday_5am = datetime(2025, 6, 14, 5, 0, tzinfo=timezone.utc)

        result = validator.validate(
            facility.id,
            saturday_5am,
            saturday_5am + timedelta(hours=1),
            "maria@example.com",
            "Maria",
        )

        assert result.is_valid is True
        assert result.warnings == [
            "Booking is outside normal business hours (6 AM - 10 PM)",
            "Booking is on a weekend",
        ]

    def test_ending_at_ten_pm_is_within_business_hours(self, validator, venue):
        _, facility, _ = venue
        start = datetime(2025, 6, 12, 21, 0, tzinfo=timezone.utc)

        result = validator.validate(
            facility.id, start, start + timedelta(hours=1), "maria@example.com", "Maria"
        )

        assert result.warnings == []

    @pytest.mark.parametrize(
        ("email", "name", "expected"),
        [
            ("maria.example.com", "Maria", ["Invalid email format"]),
            ("maria@example", "Maria", ["Invalid email format"]),
            ("maria@example.com", "M", ["Name must be at least 2 characters long"]),
            ("maria@example.com", "Maria123", ["Name contains invalid characters"]),
            ("maria@example.com", "José Núñez", []),
        ],
    )
    def test_contact_format(self, validator, venue, email, name, expected):
        _, facility, _ = venue

        result = validator.validate(
            facility.id, THURSDAY_10, THURSDAY_10 + timedelta(hours=1), email, name
        )

        assert result.errors == expected

    def test_unknown_facility(self, validator):
        result = validator.validate(
            "01J000000000000000000000ZZ",
            THURSDAY_10,
            THURSDAY_10 + timedelta(hours=1),
            "maria@example.com",
            "Maria",
        )

        assert result.errors == ["Facility not found"]

    def test_facility_without_organization(self, validator, make_facility):
        facility = make_facility(None, name="Orphan Courts")

        result = validator.validate(
            facility.id,
            THURSDAY_10,
            THURSDAY_10 + timedelta(hours=1),
            "maria@example.com",
            "Maria",
        )

        assert result.errors == ["Facility organization not found"]


class TestCheckConflicts:
    def test_overlapping_booking_is_reported(self, validator, venue, make_user, make_booking):
        _, facility, court = venue
        customer = make_user(email="carlos@example.com", name="Carlos Ruiz")
        existing = make_booking(
            customer,
            facility,
            THURSDAY_10 + timedelta(minutes=30),
            court=court,
        )

        conflicts = validator.check_conflicts(
            facility.id, THURSDAY_10, THURSDAY_10 + timedelta(hours=1), court_id=court.id
        )

        assert len(conflicts) == 1
        assert conflicts[0].id == existing.id
        assert conflicts[0].status == BookingStatus.CONFIRMED.value
        assert conflicts[0].customer_name == "Carlos Ruiz"
        assert conflicts[0].customer_email == "carlos@example.com"

    def test_touching_intervals_do_not_conflict(self, validator, venue, make_user, make_booking):
        _, facility, court = venue
        make_booking(make_user(), facility, THURSDAY_10 + timedelta(hours=1), court=court)

        conflicts = validator.check_conflicts(
            facility.id, THURSDAY_10, THURSDAY_10 + timedelta(hours=1), court_id=court.id
        )

        assert conflicts == []

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW],
    )
    def test_inactive_bookings_are_ignored(
        self, validator, venue, make_user, make_booking, status
    ):
        _, facility, court = venue
        make_booking(make_user(), facility, THURSDAY_10, court=court, status=status)

        assert (
            validator.check_conflicts(
                facility.id, THURSDAY_10, THURSDAY_10 + timedelta(hours=1), court_id=court.id
            )
            == []
        )

    def test_excluded_booking_is_ignored(self, validator, venue, make_user, make_booking):
        _, facility, court = venue
        existing = make_booking(make_user(), facility, THURSDAY_10, court=court)

        conflicts = validator.check_conflicts(
            facility.id,
            THURSDAY_10,
            THURSDAY_10 + timedelta(hours=1),
            exclude_booking_id=existing.id,
            court_id=court.id,
        )

        assert conflicts == []

    def test_court_scope(self, validator, venue, make_court, make_user, make_booking):
        _, facility, court = venue
        other_court = make_court(facility, name="Court 2")
        make_booking(make_user(), facility, THURSDAY_10, court=court)

        assert (
            validator.check_conflicts(
                facility.id,
                THURSDAY_10,
                THURSDAY_10 + timedelta(hours=1),
                court_id=other_court.id,
            )
            == []
        )
        # Without a court the whole facility is checked
        assert (
            len(
                validator.check_conflicts(
                    facility.id, THURSDAY_10, THURSDAY_10 + timedelta(hours=1)
                )
            )
            == 1
        )


@pytest.mark.parametrize(
    ("start_offset", "duration", "email", "name"),
    [
        (timedelta(0), timedelta(hours=1), "maria@example.com", "Maria Lopez"),
        (timedelta(days=2, hours=-4), timedelta(hours=1), "maria@example.com", "Maria Lopez"),
        (timedelta(0), timedelta(hours=9), "maria@example.com", "Maria Lopez"),
        (timedelta(0), timedelta(hours=-1), "not-an-email", "M"),
        (timedelta(days=-3), timedelta(minutes=15), "maria@example.com", "Maria Lopez"),
    ],
)
def test_validate_is_idempotent(validator, venue, start_offset, duration, email, name):
    _, facility, _ = venue
    start = THURSDAY_10 + start_offset

    first = validator.validate(facility.id, start, start + duration, email, name)
    second = validator.validate(facility.id, start, start + duration, email, name)

    assert first.errors == second.errors
    assert first.warnings == second.warnings
    assert first.is_valid == second.is_valid


def test_validate_is_idempotent_with_missing_fields(validator):
    first = validator.validate(None, None, None, "", None)

    assert validator.validate(None, None, None, "", None) == first
