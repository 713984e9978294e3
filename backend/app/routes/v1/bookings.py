# backend/app/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to the booking services.

Endpoints:
    POST /validate - Validate a candidate booking (errors and warnings)
    POST /conflicts - List active bookings overlapping a time range
    POST /abuse-check - Run abuse heuristics against a candidate booking
    POST /resolve-conflicts - Conflicts plus suggested alternative times
    POST / - Booking intake for the signed-in customer
"""

import logging
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ...api.dependencies import (
    get_abuse_detector,
    get_booking_service,
    get_booking_validator,
    get_conflict_resolver,
    get_current_actor,
)
from ...core.exceptions import HTTP_422_UNPROCESSABLE, DomainException
from ...principal import Actor
from ...schemas.booking import (
    AbuseResult,
    BookingConflict,
    BookingCreate,
    BookingIntakeResult,
    BookingRequest,
    ConflictQuery,
    ResolutionResult,
    ValidationResult,
)
from ...services.abuse_detector import AbuseDetector, RequestContext
from ...services.booking_service import BookingService
from ...services.booking_validator import BookingValidator
from ...services.conflict_resolver import ConflictResolver

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/validate", response_model=ValidationResult)
def validate_booking(
    payload: BookingRequest,
    _: Actor = Depends(get_current_actor),
    validator: BookingValidator = Depends(get_booking_validator),
) -> ValidationResult:
    """
    Validate a candidate booking.

    Rule violations come back as errors in the result, not as HTTP errors.
    """
    try:
        return validator.validate(
            payload.facility_id,
            payload.start_time,
            payload.end_time,
            payload.email,
            payload.name,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/conflicts", response_model=List[BookingConflict])
def check_conflicts(
    payload: ConflictQuery,
    _: Actor = Depends(get_current_actor),
    validator: BookingValidator = Depends(get_booking_validator),
) -> List[BookingConflict]:
    try:
        return validator.check_conflicts(
            payload.facility_id,
            payload.start_time,
            payload.end_time,
            exclude_booking_id=payload.exclude_booking_id,
            court_id=payload.court_id,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/abuse-check", response_model=AbuseResult)
def abuse_check(
    payload: BookingRequest,
    request: Request,
    _: Actor = Depends(get_current_actor),
    detector: AbuseDetector = Depends(get_abuse_detector),
) -> AbuseResult:
    """Evaluate abuse heuristics; client IP is taken from proxy headers."""
    try:
        return detector.detect(RequestContext.from_headers(request.headers), payload)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/resolve-conflicts", response_model=ResolutionResult)
def resolve_conflicts(
    payload: ConflictQuery,
    _: Actor = Depends(get_current_actor),
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> ResolutionResult:
    try:
        return resolver.resolve(
            payload.facility_id,
            payload.start_time,
            payload.end_time,
            exclude_booking_id=payload.exclude_booking_id,
            court_id=payload.court_id,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "",
    response_model=BookingIntakeResult,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    payload: BookingCreate,
    request: Request,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingIntakeResult:
    """
    Create a pending booking for the signed-in customer.

    A rejected intake still returns the full result: 409 when the slot is
    blocked or taken (with suggested times), 422 for every other rejection.
    """
    try:
        result = booking_service.create_booking(
            actor, payload, context=RequestContext.from_headers(request.headers)
        )
    except DomainException as e:
        handle_domain_exception(e)

    if not result.created:
        if result.slot_blocks or (
            result.resolution is not None and result.resolution.has_conflicts
        ):
            response.status_code = status.HTTP_409_CONFLICT
        else:
            response.status_code = HTTP_422_UNPROCESSABLE
    return result
