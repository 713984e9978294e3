from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import re
from typing import Iterable, Iterator, Optional

import pytz

from app.core.config import settings
from app.core.constants import DEFAULT_SLOT_DURATION_MINUTES

_SLOT_DURATION_RE = re.compile(r"(\d+)min")


def platform_tz() -> pytz.BaseTzInfo:
    """Wall-clock zone for business hours, weekends and week boundaries."""
    return pytz.timezone(settings.platform_timezone)


def to_local(value: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Convert an aware (or naive UTC) datetime to the platform wall clock."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz or platform_tz())


def local_to_utc(day: date, clock: time, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Combine a local date and wall-clock time into an aware UTC datetime."""
    zone = tz or platform_tz()
    return zone.localize(datetime.combine(day, clock)).astimezone(timezone.utc)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Half-open interval overlap.

    Touching intervals (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def slots_in_window(open_minutes: int, close_minutes: int, slot_duration_minutes: int) -> int:
    if close_minutes <= open_minutes or slot_duration_minutes <= 0:
        return 0
    return (close_minutes - open_minutes) // slot_duration_minutes


def parse_slot_duration(option: str) -> int:
    """Parse a "<n>min" slot option; anything unparseable counts as 60."""
    match = _SLOT_DURATION_RE.search(option or "")
    return int(match.group(1)) if match else DEFAULT_SLOT_DURATION_MINUTES


def min_slot_duration(time_slots: Optional[Iterable[str]]) -> int:
    """Smallest configured slot duration, so availability is an upper bound."""
    durations = [parse_slot_duration(slot) for slot in (time_slots or [])]
    return min(durations) if durations else DEFAULT_SLOT_DURATION_MINUTES


def occupancy_percent(booked_count: int, available_count: int) -> float:
    """Booked share of available slots, clamped to [0, 100] with 2 decimals."""
    if available_count <= 0:
        return 0.0
    percent = min(100.0, booked_count / available_count * 100)
    return round(max(0.0, percent), 2)


def hhmm_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. "24:00" maps to 1440."""
    hours, _, minutes = value.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def week_start(now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Sunday 00:00 of the week containing now, on the platform clock, in UTC."""
    zone = tz or platform_tz()
    local_now = to_local(now, zone)
    days_since_sunday = (local_now.weekday() + 1) % 7
    sunday = local_now.date() - timedelta(days=days_since_sunday)
    return local_to_utc(sunday, time.min, zone)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start through end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_weekend(value: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> bool:
    return to_local(value, tz).weekday() >= 5
