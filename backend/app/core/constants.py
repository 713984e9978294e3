"""Application-wide constants for the CourtBook booking engine."""

from __future__ import annotations

from datetime import timedelta

API_TITLE = "CourtBook Booking Engine"
API_VERSION = "1.0.0"
API_DESCRIPTION = (
    "Booking trust, abuse protection, conflict resolution, slot blocking and "
    "occupancy analytics for multi-tenant sports facilities."
)

# Booking timing rules
MIN_LEAD_TIME = timedelta(minutes=30)
MAX_BOOKING_HORIZON = timedelta(days=365)
MIN_BOOKING_DURATION = timedelta(minutes=30)
MAX_BOOKING_DURATION = timedelta(hours=8)

# Business hours window used for warnings and abuse heuristics (hours of day)
BUSINESS_DAY_START_HOUR = 6
BUSINESS_DAY_END_HOUR = 22

# Abuse detection thresholds
ABUSE_VELOCITY_WINDOW = timedelta(hours=1)
ABUSE_VELOCITY_LIMIT = 3
ABUSE_CANCELLATION_WINDOW = timedelta(hours=24)
ABUSE_CANCELLATION_LIMIT = 5
DISPOSABLE_EMAILS = frozenset(
    {
        "test@test.com",
        "fake@fake.com",
        "spam@spam.com",
        "admin@admin.com",
    }
)
SUSPICIOUS_NAME_TOKENS = ("test", "fake", "spam", "admin", "user")

# Conflict resolution probing
SUGGESTION_MAX_HOUR_OFFSET = 6
SUGGESTION_SAME_DAY_LIMIT = 3

# Trust system
STRIKES_TO_REDEEM = 5  # Successful bookings needed to clear 1 strike
STRIKE_EXPIRY = timedelta(days=60)
BAN_DURATION = timedelta(days=7)
# Weekly limits imposed by no-show penalties, independent of the tier defaults
TRUSTED_DEMOTION_WEEKLY_LIMIT = 1
ESTABLISHED_PENALTY_WEEKLY_LIMIT = 3
NO_SHOW_REPORTING_WINDOW = timedelta(hours=24)
RECENT_STRIKE_WINDOW = timedelta(days=30)
TRUSTED_PROMOTION_THRESHOLD = 1
ESTABLISHED_PROMOTION_THRESHOLD = 3
COMPLETION_GRACE_PERIOD = timedelta(hours=2)
COMPLETION_BATCH_SIZE = 100

# Slot blocks
WEEKDAYS_RECURRENCE_HORIZON_YEARS = 1

# Slot durations
DEFAULT_SLOT_DURATION_MINUTES = 60
DEFAULT_OPEN_TIME = "08:00"
DEFAULT_CLOSE_TIME = "22:00"

# Day names keyed by Python weekday() (Monday == 0)
DAY_ORDER = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Query limits
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 1000
