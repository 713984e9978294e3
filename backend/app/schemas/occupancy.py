# backend/app/schemas/occupancy.py
from datetime import date
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.enums import OccupancyViewMode
from .base import StandardizedModel, StrictRequestModel


class OccupancyQuery(StrictRequestModel):
    organization_id: str
    start_date: date
    end_date: date
    facility_id: Optional[str] = None
    sport_category_ids: Optional[List[str]] = None
    view_mode: OccupancyViewMode = OccupancyViewMode.DAYS

    @model_validator(mode="after")
    def _check_range(self) -> "OccupancyQuery":
        if self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self


class OccupancyBucket(StandardizedModel):
    occupancy: float
    bookings: int
    revenue: float
    available_slots: int
    total_slots: int


class DailyOccupancy(OccupancyBucket):
    date: date


class HourlyOccupancy(OccupancyBucket):
    hour: int = Field(..., ge=0, le=23)


class CourtOccupancyData(StandardizedModel):
    court_id: str
    court_name: str
    facility_id: str
    facility_name: str
    sport_category_id: str
    sport_category_name: str
    daily_occupancy: Optional[List[DailyOccupancy]] = None
    hourly_occupancy: Optional[List[HourlyOccupancy]] = None


class OccupancyResponse(StandardizedModel):
    courts: List[CourtOccupancyData]
