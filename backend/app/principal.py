"""
Actor and role variants for authorization decisions.

A caller's authority over an organization is one of PlatformAdmin, OrgOwner or
OrgMember (or no role at all). Decision points branch on the variant type
instead of comparing role strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from app.core.enums import MemberRole


@dataclass(frozen=True)
class PlatformAdmin:
    """Platform operator. Authorized for every organization."""

    user_id: str


@dataclass(frozen=True)
class OrgOwner:
    user_id: str
    organization_id: str


@dataclass(frozen=True)
class OrgMember:
    """Organization staff limited to the facilities assigned to them."""

    user_id: str
    organization_id: str
    facility_ids: frozenset[str] = frozenset()


OrgRole = Union[PlatformAdmin, OrgOwner, OrgMember]


@dataclass(frozen=True)
class Actor:
    """Authenticated caller resolved from the users/members tables."""

    user_id: str
    email: str
    is_platform_admin: bool = False
    memberships: Mapping[str, MemberRole] = field(default_factory=dict)
    assigned_facilities: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def role_in(self, organization_id: Optional[str]) -> Optional[OrgRole]:
        """Return the caller's role variant for an organization, if any."""
        if self.is_platform_admin:
            return PlatformAdmin(self.user_id)
        if organization_id is None:
            return None
        member_role = self.memberships.get(organization_id)
        if member_role is None:
            return None
        if member_role == MemberRole.OWNER:
            return OrgOwner(self.user_id, organization_id)
        return OrgMember(
            self.user_id,
            organization_id,
            self.assigned_facilities.get(organization_id, frozenset()),
        )
