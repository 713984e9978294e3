# backend/app/routes/v1/organizations.py
"""
Organization routes - API v1

Endpoints:
    POST /{organization_id}/members - Invite an existing user as owner or member
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ...api.dependencies import get_current_actor, get_organization_access_service
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.organization import InviteMemberRequest, MemberResponse
from ...services.organization_access_service import OrganizationAccessService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["organizations-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/{organization_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_member(
    organization_id: str,
    payload: InviteMemberRequest,
    actor: Actor = Depends(get_current_actor),
    access_service: OrganizationAccessService = Depends(get_organization_access_service),
) -> MemberResponse:
    """
    Add a user to the organization.

    Only "owner" and "member" are accepted roles; members are scoped to the
    listed facilities.
    """
    try:
        member = access_service.invite_member(
            actor,
            organization_id,
            payload.email,
            role=payload.role,
            facility_ids=payload.facility_ids,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return MemberResponse(
        id=member.id,
        organization_id=member.organization_id,
        user_id=member.user_id,
        role=member.role,
        facility_ids=[assignment.facility_id for assignment in member.facility_assignments],
        email=member.user.email if member.user else None,
    )
