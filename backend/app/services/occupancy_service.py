# backend/app/services/occupancy_service.py
"""
Occupancy Service for the CourtBook booking engine.

Per-court occupancy over a date range, either per day or per hour of day
aggregated across the range. Availability comes from the court's working
hours (or its facility's) and the shortest configured slot duration; bookings
counted are pending/confirmed ones starting inside the range.
"""

from collections import defaultdict
from datetime import date, time
from decimal import Decimal
import logging
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import OccupancyViewMode
from ..core.exceptions import ForbiddenException, NotFoundException
from ..models.booking import Booking
from ..models.facility import Court
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.occupancy import (
    CourtOccupancyData,
    DailyOccupancy,
    HourlyOccupancy,
    OccupancyQuery,
)
from ..utils.time_windows import iter_days, local_to_utc, occupancy_percent, to_local
from ..utils.working_hours import available_slots_for_day, day_hours_for, effective_hours
from .base import BaseService, Clock
from .organization_access_service import OrganizationAccessService

logger = logging.getLogger(__name__)

HOURS_IN_DAY = 24


class OccupancyService(BaseService):
    def __init__(
        self,
        db: Session,
        access_service: Optional[OrganizationAccessService] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.facility_repository = RepositoryFactory.create_facility_repository(db)
        self.access_service = access_service or OrganizationAccessService(db, clock=clock)

    @BaseService.measure_operation("court_occupancy")
    def query(self, actor: Actor, query: OccupancyQuery) -> List[CourtOccupancyData]:
        """
        Occupancy per active court of an organization.

        Raises:
            NotFoundException: The actor has no role in the organization
            ForbiddenException: The actor may not see the requested facility
        """
        if not self.access_service.check_organization_access(actor, query.organization_id):
            raise NotFoundException("Organization not found or access denied")

        scope = self.access_service.accessible_facility_ids(actor, query.organization_id)
        facility_ids = self._facility_filter(query, scope)
        if facility_ids is not None and not facility_ids:
            return []

        courts = self.court_repository.list_active_for_organization(
            query.organization_id,
            facility_ids=sorted(facility_ids) if facility_ids is not None else None,
            sport_category_ids=query.sport_category_ids,
        )
        range_start = local_to_utc(query.start_date, time.min)
        range_end = local_to_utc(query.end_date, time.max)
        bookings = self.booking_repository.find_active_for_courts(
            [court.id for court in courts], range_start, range_end
        )

        by_court: Dict[str, List[Booking]] = defaultdict(list)
        for booking in bookings:
            if booking.court_id:
                by_court[booking.court_id].append(booking)

        results = []
        for court in courts:
            court_bookings = by_court.get(court.id, [])
            if query.view_mode == OccupancyViewMode.HOURS:
                series = {
                    "hourly_occupancy": _hourly(
                        court, court_bookings, query.start_date, query.end_date
                    )
                }
            else:
                series = {
                    "daily_occupancy": _daily(
                        court, court_bookings, query.start_date, query.end_date
                    )
                }
            results.append(_court_data(court, **series))
        return results

    def _facility_filter(
        self, query: OccupancyQuery, scope: Optional[FrozenSet[str]]
    ) -> Optional[FrozenSet[str]]:
        """Facility ids to restrict courts to, or None for the whole organization."""
        if query.facility_id:
            in_organization = query.facility_id in self.facility_repository.ids_for_organization(
                query.organization_id
            )
            if not in_organization or (scope is not None and query.facility_id not in scope):
                raise ForbiddenException("Access denied to this facility")
            return frozenset({query.facility_id})
        return scope


def _court_data(court: Court, **series: object) -> CourtOccupancyData:
    facility = court.facility
    return CourtOccupancyData(
        court_id=court.id,
        court_name=court.name,
        facility_id=facility.id,
        facility_name=facility.name,
        sport_category_id=court.sport_category.id,
        sport_category_name=court.sport_category.name,
        **series,
    )


def _revenue(bookings: List[Booking]) -> float:
    return float(sum((Decimal(b.total_price or 0) for b in bookings), Decimal("0")))


def _daily(
    court: Court, bookings: List[Booking], start_date: date, end_date: date
) -> List[DailyOccupancy]:
    by_day: Dict[date, List[Booking]] = defaultdict(list)
    for booking in bookings:
        by_day[to_local(booking.start_time).date()].append(booking)

    rows = []
    for day in iter_days(start_date, end_date):
        available = available_slots_for_day(
            court.working_hours, court.facility.working_hours, court.time_slots, day
        )
        day_bookings = by_day.get(day, [])
        rows.append(
            DailyOccupancy(
                date=day,
                occupancy=occupancy_percent(len(day_bookings), available),
                bookings=len(day_bookings),
                revenue=_revenue(day_bookings),
                available_slots=available,
                total_slots=available,
            )
        )
    return rows


def _hourly(
    court: Court, bookings: List[Booking], start_date: date, end_date: date
) -> List[HourlyOccupancy]:
    # A booking counts in every hour from its start hour through its end hour
    by_hour: Dict[int, List[Booking]] = defaultdict(list)
    for booking in bookings:
        first_hour = to_local(booking.start_time).hour
        last_hour = to_local(booking.end_time).hour
        for hour in range(first_hour, min(last_hour, HOURS_IN_DAY - 1) + 1):
            by_hour[hour].append(booking)

    hours = effective_hours(court.working_hours, court.facility.working_hours)
    available_by_hour = [0] * HOURS_IN_DAY
    for day in iter_days(start_date, end_date):
        window = day_hours_for(hours, day)
        if window is None:
            continue
        for hour in range(HOURS_IN_DAY):
            if window.covers_hour(hour):
                available_by_hour[hour] += 1

    rows = []
    for hour in range(HOURS_IN_DAY):
        hour_bookings = by_hour.get(hour, [])
        available = available_by_hour[hour]
        rows.append(
            HourlyOccupancy(
                hour=hour,
                occupancy=occupancy_percent(len(hour_bookings), available),
                bookings=len(hour_bookings),
                revenue=_revenue(hour_bookings),
                available_slots=available,
                total_slots=available,
            )
        )
    return rows
