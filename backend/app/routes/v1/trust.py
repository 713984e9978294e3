# backend/app/routes/v1/trust.py
"""
Trust routes - API v1

Versioned trust endpoints under /api/v1/trust.

Endpoints:
    GET /can-book - Booking eligibility for the signed-in customer
    GET /users/{user_id}/can-book - Eligibility for any user (platform admin)
    POST /no-shows - Report a no-show for a booking (organization members)
    POST /bookings/{booking_id}/complete - Credit a completed booking (platform admin)
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...api.dependencies import get_current_actor, get_trust_service, require_platform_admin
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.trust import (
    EligibilityResult,
    NoShowReportRequest,
    PenaltyResult,
    PromotionResult,
)
from ...services.trust_service import TrustService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trust-v1"])

_PENALTY_ERROR_STATUS = {
    "BOOKING_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_AUTHORIZED": status.HTTP_403_FORBIDDEN,
}


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/can-book", response_model=EligibilityResult)
def can_book(
    actor: Actor = Depends(get_current_actor),
    trust_service: TrustService = Depends(get_trust_service),
) -> EligibilityResult:
    try:
        return trust_service.can_user_book(actor.user_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/users/{user_id}/can-book", response_model=EligibilityResult)
def user_can_book(
    user_id: str,
    _: Actor = Depends(require_platform_admin),
    trust_service: TrustService = Depends(get_trust_service),
) -> EligibilityResult:
    try:
        return trust_service.can_user_book(user_id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/no-shows", response_model=PenaltyResult)
def report_no_show(
    payload: NoShowReportRequest,
    response: Response,
    actor: Actor = Depends(get_current_actor),
    trust_service: TrustService = Depends(get_trust_service),
) -> PenaltyResult:
    """
    Report that the customer of a booking did not show up.

    A rejected report returns the PenaltyResult with its error code and a
    4xx status.
    """
    try:
        result = trust_service.report_no_show(
            payload.booking_id, actor.user_id, reason=payload.reason
        )
    except DomainException as e:
        handle_domain_exception(e)

    if not result.success:
        response.status_code = _PENALTY_ERROR_STATUS.get(
            result.error_code or "", status.HTTP_400_BAD_REQUEST
        )
    return result


@router.post("/bookings/{booking_id}/complete", response_model=PromotionResult)
def complete_booking(
    booking_id: str,
    _: Actor = Depends(require_platform_admin),
    trust_service: TrustService = Depends(get_trust_service),
) -> PromotionResult:
    try:
        return trust_service.process_booking_completion(booking_id)
    except DomainException as e:
        handle_domain_exception(e)
