from typing import List, Optional

from pydantic import Field

from ..core.enums import MemberRole
from .base import StandardizedModel, StrictRequestModel


class InviteMemberRequest(StrictRequestModel):
    """
    Invite a user into an organization.

    The role is checked by the service so that "admin" and other unknown
    roles are reported with a domain error code.
    """

    email: str = Field(..., min_length=3, max_length=255)
    role: str = MemberRole.MEMBER.value
    facility_ids: List[str] = Field(default_factory=list)


class MemberResponse(StandardizedModel):
    id: str
    organization_id: str
    user_id: str
    role: str
    facility_ids: List[str] = Field(default_factory=list)
    email: Optional[str] = None
