# backend/app/routes/v1/admin.py
"""
Admin and scheduler routes - API v1

Endpoints:
    POST /strikes/expire - Expire strikes older than 60 days (platform admin)
    POST /trust/process - Completion sweep plus strike expiry (cron secret)
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ...api.dependencies import get_trust_service, require_platform_admin, verify_cron_secret
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.trust import StrikeExpiryResult, TrustSweepResult
from ...services.trust_service import TrustService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/strikes/expire", response_model=StrikeExpiryResult)
def expire_strikes(
    actor: Actor = Depends(require_platform_admin),
    trust_service: TrustService = Depends(get_trust_service),
) -> StrikeExpiryResult:
    try:
        expired = trust_service.expire_old_strikes()
    except DomainException as e:
        handle_domain_exception(e)
    logger.info("Strike expiry triggered", extra={"actor_id": actor.user_id, "expired": expired})
    return StrikeExpiryResult(expired=expired)


@router.post(
    "/trust/process",
    response_model=TrustSweepResult,
    dependencies=[Depends(verify_cron_secret)],
)
def process_trust(
    trust_service: TrustService = Depends(get_trust_service),
) -> TrustSweepResult:
    """
    Scheduler entry point for the trust sweep.

    Completes bookings past their grace period, then expires old strikes.
    """
    try:
        batch = trust_service.process_completed_bookings()
        expired = trust_service.expire_old_strikes()
    except DomainException as e:
        handle_domain_exception(e)
    return TrustSweepResult(
        processed=batch.processed,
        promoted=batch.promoted,
        expired_strikes=expired,
        timestamp=trust_service.now(),
    )
