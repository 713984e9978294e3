# backend/app/services/conflict_resolver.py
"""
Conflict Resolver for the CourtBook booking engine.

When a requested slot is taken, probes later start times on the same day and
the same time on the next day, keeping the requested duration.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import SUGGESTION_MAX_HOUR_OFFSET, SUGGESTION_SAME_DAY_LIMIT
from ..schemas.booking import ResolutionResult, SuggestedTime
from .base import BaseService, Clock
from .booking_validator import BookingValidator

logger = logging.getLogger(__name__)


class ConflictResolver(BaseService):
    def __init__(
        self,
        db: Session,
        validator: Optional[BookingValidator] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.validator = validator or BookingValidator(db, clock=clock)

    @BaseService.measure_operation("resolve_conflicts")
    def resolve(
        self,
        facility_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_booking_id: Optional[str] = None,
        court_id: Optional[str] = None,
    ) -> ResolutionResult:
        conflicts = self.validator.check_conflicts(
            facility_id, start_time, end_time, exclude_booking_id, court_id
        )
        if not conflicts:
            return ResolutionResult(has_conflicts=False)

        suggestions = self._suggest_times(facility_id, start_time, end_time, court_id)
        self.logger.info(
            "Booking conflict resolved with suggestions",
            extra={
                "facility_id": facility_id,
                "conflict_count": len(conflicts),
                "suggestion_count": len(suggestions),
            },
        )
        return ResolutionResult(
            has_conflicts=True, conflicts=conflicts, suggested_times=suggestions
        )

    def _suggest_times(
        self,
        facility_id: str,
        start_time: datetime,
        end_time: datetime,
        court_id: Optional[str],
    ) -> List[SuggestedTime]:
        duration = end_time - start_time
        suggestions: List[SuggestedTime] = []

        for offset in range(1, SUGGESTION_MAX_HOUR_OFFSET + 1):
            candidate = start_time + timedelta(hours=offset)
            if self._is_free(facility_id, candidate, candidate + duration, court_id):
                suggestions.append(SuggestedTime(start_time=candidate, end_time=candidate + duration))
            if len(suggestions) >= SUGGESTION_SAME_DAY_LIMIT:
                break

        next_day = start_time + timedelta(days=1)
        if self._is_free(facility_id, next_day, next_day + duration, court_id):
            suggestions.append(SuggestedTime(start_time=next_day, end_time=next_day + duration))

        return suggestions

    def _is_free(
        self, facility_id: str, start_time: datetime, end_time: datetime, court_id: Optional[str]
    ) -> bool:
        return not self.validator.check_conflicts(
            facility_id, start_time, end_time, court_id=court_id
        )
