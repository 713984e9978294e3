from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from app.core.enums import WEEKLY_LIMITS, MemberRole, TrustLevel
from app.models import AuditLog, Booking, BookingStatus, NoShowReport, NoShowStatus, User
from app.services.trust_service import (
    BAN_PENALTY,
    DEMOTE_TO_TRUSTED_PENALTY,
    DEMOTE_TO_VERIFIED_PENALTY,
    STRIKE_ONLY_PENALTY,
    WARNING_PENALTY,
    TrustService,
)


@pytest.fixture
def trust_service(db, clock):
    return TrustService(db, clock=clock)


@pytest.fixture
def staff(venue, make_user, make_member):
    """Organization owner allowed to report no-shows at the venue."""
    organization, _, _ = venue
    owner = make_user(email="owner@riverside.example.com", name="Olivia Grant")
    make_member(owner, organization, role=MemberRole.OWNER)
    return owner


@pytest.fixture
def ended_booking(venue, make_booking, now):
    """Factory for a confirmed booking whose slot ended hours_ago hours before now."""
    _, facility, court = venue

    def _make(customer: User, hours_ago: float = 2) -> Booking:
        end = now - timedelta(hours=hours_ago)
        return make_booking(customer, facility, end - timedelta(hours=1), end, court=court)

    return _make


@pytest.fixture
def add_strike(db, venue, make_booking, staff):
    """Persist an active report for a past booking of the customer."""
    _, facility, court = venue

    def _add(customer: User, reported_at: datetime, status: NoShowStatus = NoShowStatus.ACTIVE):
        booking = make_booking(
            customer,
            facility,
            reported_at - timedelta(hours=3),
            court=court,
            status=BookingStatus.NO_SHOW,
        )
        report = NoShowReport(
            booking_id=booking.id,
            user_id=customer.id,
            reported_by=staff.id,
            status=status.value,
            reported_at=reported_at,
        )
        db.add(report)
        db.commit()
        return report

    return _add


def _reload(db, model, entity_id):
    db.expire_all()
    return db.get(model, entity_id)


class TestCanUserBook:
    def test_unknown_user(self, trust_service):
        result = trust_service.can_user_book("01J000000000000000000000ZZ")

        assert result.can_book is False
        assert result.reason == "User not found"

    def test_verified_user_with_room_in_quota(self, trust_service, make_user):
        customer = make_user()

        result = trust_service.can_user_book(customer.id)

        assert result.can_book is True
        assert result.weekly_count == 0
        assert result.weekly_limit == 1
        assert result.trust_level == TrustLevel.VERIFIED

    def test_suspended_account_is_checked_first(self, trust_service, make_user, now):
        customer = make_user(
            banned=True, email_verified=False, booking_ban_until=now + timedelta(days=2)
        )

        result = trust_service.can_user_book(customer.id)

        assert result.can_book is False
        assert result.reason == "Your account has been suspended"

    def test_active_ban_precedes_verification(self, trust_service, make_user, now):
        customer = make_user(email_verified=False, booking_ban_until=now + timedelta(days=7))

        result = trust_service.can_user_book(customer.id)

        assert result.can_book is False
        assert result.reason == "You are banned from booking until 2025-06-18"
        assert result.booking_ban_until == now + timedelta(days=7)

    def test_expired_ban_is_ignored(self, trust_service, make_user, now):
        customer = make_user(booking_ban_until=now - timedelta(minutes=1))

        assert trust_service.can_user_book(customer.id).can_book is True

    def test_unverified_email(self, trust_service, make_user):
        customer = make_user(email_verified=False)

        result = trust_service.can_user_book(customer.id)

        assert result.can_book is False
        assert result.reason == "Please verify your email to make bookings"

    def test_weekly_quota_counts_active_bookings_since_sunday(
        self, trust_service, venue, make_user, make_booking, now
    ):
        _, facility, court = venue
        customer = make_user()
        # Saturday before the current week, and a cancelled one this week
        make_booking(
            customer, facility, now + timedelta(days=2), court=court,
            created_at=now - timedelta(days=4),
        )
        make_booking(
            customer, facility, now + timedelta(days=3), court=court,
            status=BookingStatus.CANCELLED, created_at=now - timedelta(days=1),
        )
        assert trust_service.can_user_book(customer.id).can_book is True

        make_booking(
            customer, facility, now + timedelta(days=4), court=court,
            status=BookingStatus.PENDING, created_at=now - timedelta(days=1),
        )
        result = trust_service.can_user_book(customer.id)

        assert result.can_book is False
        assert result.reason == "You've reached your weekly limit of 1 booking(s)"
        assert result.weekly_count == 1
        assert result.weekly_limit == 1

    def test_unverified_level_has_no_quota(self, trust_service, make_user):
        customer = make_user(trust_level=int(TrustLevel.UNVERIFIED))

        result = trust_service.can_user_book(customer.id)

        assert result.can_book is False
        assert result.weekly_limit == 0


class TestReportNoShow:
    def test_verified_user_is_banned_and_pending_bookings_cancelled(
        self, db, trust_service, venue, staff, make_user, make_booking, ended_booking, now
    ):
        _, facility, court = venue
        customer = make_user()
        booking = ended_booking(customer, hours_ago=2)
        future_pending = make_booking(
            customer, facility, now + timedelta(days=2), court=court,
            status=BookingStatus.PENDING,
        )
        future_confirmed = make_booking(
            customer, facility, now + timedelta(days=3), court=court,
        )

        result = trust_service.report_no_show(booking.id, staff.id, reason="Court sat empty")

        assert result.success is True
        assert result.penalty_applied == BAN_PENALTY
        assert result.cancelled_bookings == 1

        customer = _reload(db, User, customer.id)
        assert customer.active_strikes == 1
        assert customer.last_strike_at == now
        assert customer.booking_ban_until == now + timedelta(days=7)
        assert customer.trust_level == TrustLevel.VERIFIED
        assert db.get(Booking, booking.id).status == BookingStatus.NO_SHOW.value
        assert db.get(Booking, future_pending.id).status == BookingStatus.CANCELLED.value
        assert db.get(Booking, future_confirmed.id).status == BookingStatus.CONFIRMED.value

        report = db.query(NoShowReport).filter_by(booking_id=booking.id).one()
        assert report.status == NoShowStatus.ACTIVE.value
        assert report.reported_by == staff.id
        assert report.reason == "Court sat empty"

        audit = db.query(AuditLog).filter_by(entity_id=booking.id).one()
        assert audit.action == "updated"
        assert audit.severity == "high"
        assert audit.details["penalty"] == "ban"

    def test_reporting_window_expired_changes_nothing(
        self, db, trust_service, staff, make_user, ended_booking
    ):
        customer = make_user()
        booking = ended_booking(customer, hours_ago=25)

        result = trust_service.report_no_show(booking.id, staff.id)

        assert result.success is False
        assert result.error_code == "REPORTING_WINDOW_EXPIRED"
        assert result.error.startswith("Reporting window has expired")
        assert _reload(db, User, customer.id).active_strikes == 0
        assert db.query(NoShowReport).count() == 0
        assert db.get(Booking, booking.id).status == BookingStatus.CONFIRMED.value

    def test_booking_not_found(self, trust_service, staff):
        result = trust_service.report_no_show("01J000000000000000000000ZZ", staff.id)

        assert result.success is False
        assert result.error_code == "BOOKING_NOT_FOUND"

    def test_booking_not_ended(self, trust_service, venue, staff, make_user, make_booking, now):
        _, facility, court = venue
        booking = make_booking(make_user(), facility, now - timedelta(minutes=30), court=court)

        result = trust_service.report_no_show(booking.id, staff.id)

        assert result.error_code == "BOOKING_NOT_ENDED"
        assert result.error == "You can only report a no-show after the booking time has passed"

    def test_reporter_must_belong_to_the_organization(
        self, trust_service, make_user, ended_booking
    ):
        outsider = make_user(email="outsider@example.com")
        booking = ended_booking(make_user())

        result = trust_service.report_no_show(booking.id, outsider.id)

        assert result.error_code == "NOT_AUTHORIZED"

    def test_plain_member_may_report(
        self, trust_service, venue, make_user, make_member, ended_booking
    ):
        organization, _, _ = venue
        desk = make_user(email="desk@riverside.example.com", name="Dana Field")
        make_member(desk, organization, role=MemberRole.MEMBER)
        booking = ended_booking(make_user())

        assert trust_service.report_no_show(booking.id, desk.id).success is True

    def test_second_report_is_rejected(self, trust_service, staff, make_user, ended_booking):
        booking = ended_booking(make_user())
        assert trust_service.report_no_show(booking.id, staff.id).success is True

        result = trust_service.report_no_show(booking.id, staff.id)

        assert result.success is False
        assert result.error_code == "ALREADY_REPORTED"

    def test_trusted_user_is_demoted(
        self, db, trust_service, venue, staff, make_user, make_booking, ended_booking, now
    ):
        _, facility, court = venue
        customer = make_user(trust_level=int(TrustLevel.TRUSTED))
        pending = make_booking(
            customer, facility, now + timedelta(days=1), court=court,
            status=BookingStatus.PENDING,
        )

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == DEMOTE_TO_VERIFIED_PENALTY
        assert result.cancelled_bookings == 1
        customer = _reload(db, User, customer.id)
        assert customer.trust_level == TrustLevel.VERIFIED
        assert customer.weekly_booking_limit == 1
        assert customer.booking_ban_until is None
        assert db.get(Booking, pending.id).status == BookingStatus.CANCELLED.value

    def test_demotion_limit_does_not_follow_tier_defaults(
        self, db, trust_service, staff, make_user, ended_booking, monkeypatch
    ):
        customer = make_user(trust_level=int(TrustLevel.TRUSTED))
        monkeypatch.setitem(WEEKLY_LIMITS, TrustLevel.VERIFIED, 2)

        trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert _reload(db, User, customer.id).weekly_booking_limit == 1

    def test_established_first_strike_is_a_warning(
        self, db, trust_service, staff, make_user, ended_booking
    ):
        customer = make_user(trust_level=int(TrustLevel.ESTABLISHED))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == WARNING_PENALTY
        assert result.cancelled_bookings == 0
        customer = _reload(db, User, customer.id)
        assert customer.trust_level == TrustLevel.ESTABLISHED
        assert customer.weekly_booking_limit == 3
        assert customer.active_strikes == 1

    def test_established_second_recent_strike_demotes_without_ban(
        self, db, trust_service, staff, make_user, ended_booking, add_strike, now
    ):
        customer = make_user(trust_level=int(TrustLevel.ESTABLISHED), active_strikes=1)
        add_strike(customer, now - timedelta(days=10))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == DEMOTE_TO_TRUSTED_PENALTY
        customer = _reload(db, User, customer.id)
        assert customer.trust_level == TrustLevel.TRUSTED
        assert customer.weekly_booking_limit == 3
        assert customer.active_strikes == 2
        assert customer.booking_ban_until is None

    def test_old_strikes_do_not_count_as_recent(
        self, trust_service, staff, make_user, ended_booking, add_strike, now
    ):
        customer = make_user(trust_level=int(TrustLevel.ESTABLISHED), active_strikes=1)
        add_strike(customer, now - timedelta(days=45))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == WARNING_PENALTY

    def test_established_third_recent_strike_bans(
        self, db, trust_service, staff, make_user, ended_booking, add_strike, now
    ):
        customer = make_user(trust_level=int(TrustLevel.ESTABLISHED), active_strikes=2)
        add_strike(customer, now - timedelta(days=20))
        add_strike(customer, now - timedelta(days=5))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == BAN_PENALTY
        customer = _reload(db, User, customer.id)
        assert customer.trust_level == TrustLevel.ESTABLISHED
        assert customer.booking_ban_until == now + timedelta(days=7)

    def test_unverified_user_only_gets_a_strike(
        self, db, trust_service, staff, make_user, ended_booking
    ):
        customer = make_user(trust_level=int(TrustLevel.UNVERIFIED))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.penalty_applied == STRIKE_ONLY_PENALTY
        customer = _reload(db, User, customer.id)
        assert customer.active_strikes == 1
        assert customer.trust_level == TrustLevel.UNVERIFIED
        assert customer.booking_ban_until is None


class TestProcessBookingCompletion:
    def test_first_completion_promotes_verified_to_trusted(
        self, db, trust_service, make_user, ended_booking
    ):
        customer = make_user()

        result = trust_service.process_booking_completion(ended_booking(customer).id)

        assert result.promoted is True
        assert result.new_level == TrustLevel.TRUSTED
        customer = _reload(db, User, customer.id)
        assert customer.successful_bookings == 1
        assert customer.weekly_booking_limit == 3

    def test_third_completion_promotes_trusted_to_established(
        self, db, trust_service, make_user, ended_booking
    ):
        customer = make_user(trust_level=int(TrustLevel.TRUSTED), successful_bookings=2)

        result = trust_service.process_booking_completion(ended_booking(customer).id)

        assert result.promoted is True
        assert result.new_level == TrustLevel.ESTABLISHED
        assert _reload(db, User, customer.id).weekly_booking_limit == 5

    def test_trusted_below_threshold_stays(self, trust_service, make_user, ended_booking):
        customer = make_user(trust_level=int(TrustLevel.TRUSTED), successful_bookings=0)

        result = trust_service.process_booking_completion(ended_booking(customer).id)

        assert result.promoted is False
        assert result.new_level == TrustLevel.TRUSTED

    def test_reported_booking_is_skipped(
        self, db, trust_service, staff, make_user, ended_booking
    ):
        customer = make_user()
        booking = ended_booking(customer)
        trust_service.report_no_show(booking.id, staff.id)

        result = trust_service.process_booking_completion(booking.id)

        assert result.skipped is True
        assert _reload(db, User, customer.id).successful_bookings == 0

    def test_missing_booking_is_skipped(self, trust_service):
        assert trust_service.process_booking_completion("01J000000000000000000000ZZ").skipped

    def test_completion_marks_the_booking_and_is_credited_once(
        self, db, trust_service, make_user, ended_booking
    ):
        customer = make_user()
        booking = ended_booking(customer)

        first = trust_service.process_booking_completion(booking.id)
        second = trust_service.process_booking_completion(booking.id)
        third = trust_service.process_booking_completion(booking.id)

        assert first.promoted is True
        assert second.skipped is True
        assert third.skipped is True
        customer = _reload(db, User, customer.id)
        assert customer.successful_bookings == 1
        assert customer.trust_level == TrustLevel.TRUSTED
        assert db.get(Booking, booking.id).status == BookingStatus.COMPLETED.value
        assert db.query(AuditLog).filter_by(entity_id=booking.id).count() == 1

    def test_booking_that_has_not_ended_is_skipped(
        self, db, trust_service, venue, make_user, make_booking, now
    ):
        _, facility, court = venue
        customer = make_user()
        booking = make_booking(customer, facility, now + timedelta(days=3), court=court)

        result = trust_service.process_booking_completion(booking.id)

        assert result.skipped is True
        customer = _reload(db, User, customer.id)
        assert customer.successful_bookings == 0
        assert customer.trust_level == TrustLevel.VERIFIED
        assert db.get(Booking, booking.id).status == BookingStatus.CONFIRMED.value

    @pytest.mark.parametrize(
        "status", [BookingStatus.PENDING, BookingStatus.CANCELLED, BookingStatus.NO_SHOW]
    )
    def test_only_confirmed_bookings_are_credited(
        self, db, trust_service, venue, make_user, make_booking, now, status
    ):
        _, facility, court = venue
        customer = make_user()
        booking = make_booking(
            customer, facility, now - timedelta(hours=3), court=court, status=status
        )

        assert trust_service.process_booking_completion(booking.id).skipped is True
        assert _reload(db, User, customer.id).successful_bookings == 0

    def test_every_fifth_success_redeems_the_oldest_strike(
        self, db, trust_service, make_user, ended_booking, add_strike, now
    ):
        customer = make_user(
            trust_level=int(TrustLevel.ESTABLISHED), successful_bookings=4, active_strikes=2
        )
        oldest = add_strike(customer, now - timedelta(days=40))
        newest = add_strike(customer, now - timedelta(days=3))

        result = trust_service.process_booking_completion(ended_booking(customer).id)

        assert result.strikes_redeemed == 1
        assert _reload(db, User, customer.id).active_strikes == 1
        assert db.get(NoShowReport, oldest.id).status == NoShowStatus.REDEEMED.value
        assert db.get(NoShowReport, oldest.id).redeemed_at == now
        assert db.get(NoShowReport, newest.id).status == NoShowStatus.ACTIVE.value

    def test_no_redemption_between_multiples_of_five(
        self, trust_service, make_user, ended_booking, add_strike, now
    ):
        customer = make_user(
            trust_level=int(TrustLevel.ESTABLISHED), successful_bookings=5, active_strikes=1
        )
        add_strike(customer, now - timedelta(days=3))

        assert trust_service.process_booking_completion(
            ended_booking(customer).id
        ).strikes_redeemed == 0


class TestExpireOldStrikes:
    def test_strikes_older_than_sixty_days_expire(
        self, db, trust_service, make_user, add_strike, now
    ):
        customer = make_user(active_strikes=2)
        stale = add_strike(customer, now - timedelta(days=61))
        fresh = add_strike(customer, now - timedelta(days=59))
        redeemed = add_strike(customer, now - timedelta(days=90), status=NoShowStatus.REDEEMED)

        assert trust_service.expire_old_strikes() == 1

        db.expire_all()
        assert db.get(NoShowReport, stale.id).status == NoShowStatus.EXPIRED.value
        assert db.get(NoShowReport, stale.id).expired_at == now
        assert db.get(NoShowReport, fresh.id).status == NoShowStatus.ACTIVE.value
        assert db.get(NoShowReport, redeemed.id).status == NoShowStatus.REDEEMED.value
        assert db.get(User, customer.id).active_strikes == 1

    def test_strike_count_never_goes_negative(self, db, trust_service, make_user, add_strike, now):
        customer = make_user(active_strikes=0)
        add_strike(customer, now - timedelta(days=70))
        add_strike(customer, now - timedelta(days=65))

        assert trust_service.expire_old_strikes() == 2
        assert _reload(db, User, customer.id).active_strikes == 0

    def test_nothing_to_expire(self, trust_service):
        assert trust_service.expire_old_strikes() == 0


class TestProcessCompletedBookings:
    def test_sweep_completes_confirmed_bookings_past_grace_period(
        self, db, trust_service, venue, make_user, make_booking, ended_booking, now
    ):
        _, facility, court = venue
        customer = make_user()
        due = ended_booking(customer, hours_ago=3)
        recent = ended_booking(make_user(), hours_ago=1)
        stale_pending = make_booking(
            make_user(), facility, now - timedelta(hours=10), court=court,
            status=BookingStatus.PENDING,
        )

        result = trust_service.process_completed_bookings()

        assert (result.processed, result.promoted) == (1, 1)
        db.expire_all()
        assert db.get(Booking, due.id).status == BookingStatus.COMPLETED.value
        assert db.get(Booking, recent.id).status == BookingStatus.CONFIRMED.value
        assert db.get(Booking, stale_pending.id).status == BookingStatus.PENDING.value
        assert db.get(User, customer.id).trust_level == TrustLevel.TRUSTED

        audit = db.query(AuditLog).filter_by(entity_id=due.id).one()
        assert audit.action == "completed"
        assert audit.details == {"promoted": True, "trust_level": int(TrustLevel.TRUSTED)}

    def test_batch_size_limits_the_sweep(self, trust_service, make_user, ended_booking):
        customer = make_user(trust_level=int(TrustLevel.ESTABLISHED))
        for hours_ago in (3, 4, 5):
            ended_booking(customer, hours_ago=hours_ago)

        result = trust_service.process_completed_bookings(batch_size=2)

        assert result.processed == 2
        assert result.promoted == 0


class TestTrustMonotonicity:
    @pytest.mark.parametrize(
        ("level", "successful"),
        [
            (TrustLevel.UNVERIFIED, 0),
            (TrustLevel.VERIFIED, 0),
            (TrustLevel.VERIFIED, 7),
            (TrustLevel.TRUSTED, 0),
            (TrustLevel.TRUSTED, 2),
            (TrustLevel.ESTABLISHED, 9),
        ],
    )
    def test_completion_never_lowers_the_level(
        self, db, trust_service, make_user, ended_booking, level, successful
    ):
        customer = make_user(trust_level=int(level), successful_bookings=successful)

        trust_service.process_booking_completion(ended_booking(customer).id)

        assert _reload(db, User, customer.id).trust_level >= level

    @pytest.mark.parametrize("level", list(TrustLevel))
    @pytest.mark.parametrize("recent_strikes", [0, 1, 2])
    def test_no_show_never_raises_the_level(
        self, db, trust_service, staff, make_user, ended_booking, add_strike, now,
        level, recent_strikes,
    ):
        customer = make_user(trust_level=int(level), active_strikes=recent_strikes)
        for days_ago in range(recent_strikes):
            add_strike(customer, now - timedelta(days=5 + days_ago))

        result = trust_service.report_no_show(ended_booking(customer).id, staff.id)

        assert result.success is True
        assert _reload(db, User, customer.id).trust_level <= level
