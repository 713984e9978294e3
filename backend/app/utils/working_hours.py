"""
Working-hours maps for facilities and courts.

A map is keyed by lowercase weekday name; each entry has "open", "close" (HH:MM)
and "closed". Missing days are closed. Missing open/close fall back to 08:00 and
22:00.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from app.core.constants import DAY_ORDER, DEFAULT_CLOSE_TIME, DEFAULT_OPEN_TIME
from app.utils.time_windows import hhmm_to_minutes, min_slot_duration, slots_in_window

logger = logging.getLogger(__name__)

WorkingHours = Dict[str, Dict[str, Any]]


@dataclass(frozen=True)
class DayHours:
    open_minutes: int
    close_minutes: int

    @property
    def open_hour(self) -> int:
        return self.open_minutes // 60

    @property
    def close_hour(self) -> int:
        return self.close_minutes // 60

    def covers_hour(self, hour: int) -> bool:
        return self.open_hour <= hour < self.close_hour


def parse_working_hours(raw: Any) -> Optional[WorkingHours]:
    """Accept a JSON string, a mapping or None. Malformed input yields None."""
    if not raw:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed working hours payload")
            return None
    if not isinstance(raw, Mapping):
        return None
    return {str(day).lower(): dict(value or {}) for day, value in raw.items()}


def day_name(day: date) -> str:
    return DAY_ORDER[day.weekday()]


def day_hours_for(hours: Optional[WorkingHours], day: date) -> Optional[DayHours]:
    """Opening window for a date, or None when closed or unknown."""
    if not hours:
        return None
    entry = hours.get(day_name(day))
    if not entry or entry.get("closed"):
        return None
    try:
        return DayHours(
            open_minutes=hhmm_to_minutes(entry.get("open") or DEFAULT_OPEN_TIME),
            close_minutes=hhmm_to_minutes(entry.get("close") or DEFAULT_CLOSE_TIME),
        )
    except ValueError:
        logger.warning("Ignoring malformed hours for %s: %r", day_name(day), entry)
        return None


def effective_hours(court_hours: Any, facility_hours: Any) -> Optional[WorkingHours]:
    """Court hours when set, otherwise the parent facility's."""
    return parse_working_hours(court_hours) or parse_working_hours(facility_hours)


def available_slots_for_day(
    court_hours: Any,
    facility_hours: Any,
    time_slots: Optional[Iterable[str]],
    day: date,
) -> int:
    window = day_hours_for(effective_hours(court_hours, facility_hours), day)
    if window is None:
        return 0
    return slots_in_window(window.open_minutes, window.close_minutes, min_slot_duration(time_slots))
