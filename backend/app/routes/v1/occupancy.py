# backend/app/routes/v1/occupancy.py
"""
Occupancy routes - API v1

Endpoints:
    GET /courts - Per-court occupancy for an organization over a date range
"""

from datetime import date
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ...api.dependencies import get_current_actor, get_occupancy_service
from ...core.enums import OccupancyViewMode
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.occupancy import OccupancyQuery, OccupancyResponse
from ...services.occupancy_service import OccupancyService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["occupancy-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _split_ids(raw: Optional[str]) -> Optional[list[str]]:
    if not raw:
        return None
    ids = [value.strip() for value in raw.split(",") if value.strip()]
    return ids or None


@router.get("/courts", response_model=OccupancyResponse)
def court_occupancy(
    organization_id: str = Query(..., alias="organizationId"),
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    facility_id: Optional[str] = Query(None, alias="facilityId"),
    sport_category_ids: Optional[str] = Query(
        None, alias="sportCategoryIds", description="Comma-separated sport category ids"
    ),
    view_mode: OccupancyViewMode = Query(OccupancyViewMode.DAYS, alias="viewMode"),
    actor: Actor = Depends(get_current_actor),
    service: OccupancyService = Depends(get_occupancy_service),
) -> OccupancyResponse:
    try:
        query = OccupancyQuery(
            organization_id=organization_id,
            start_date=start_date,
            end_date=end_date,
            facility_id=facility_id,
            sport_category_ids=_split_ids(sport_category_ids),
            view_mode=view_mode,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    try:
        courts = service.query(actor, query)
    except DomainException as e:
        handle_domain_exception(e)
    return OccupancyResponse(courts=courts)
