# backend/app/services/organization_access_service.py
"""
Organization access and membership for the CourtBook booking engine.

Resolves the caller into an Actor and answers authorization questions by
branching on the role variant (PlatformAdmin, OrgOwner, OrgMember). Membership
invitations only ever produce "owner" or "member" rows.
"""

import logging
from typing import FrozenSet, List, Optional, Sequence, assert_never

from sqlalchemy.orm import Session

from ..core.enums import MemberRole
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.organization import FacilityMember, Member
from ..principal import Actor, OrgMember, OrgOwner, OrgRole, PlatformAdmin
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

_VALID_MEMBER_ROLES = frozenset(role.value for role in MemberRole)


def is_owner_role(role: Optional[OrgRole]) -> bool:
    if role is None:
        return False
    if isinstance(role, PlatformAdmin):
        return True
    if isinstance(role, OrgOwner):
        return True
    if isinstance(role, OrgMember):
        return False
    assert_never(role)


def facility_scope(role: Optional[OrgRole]) -> Optional[FrozenSet[str]]:
    """Facilities a role is limited to; None means every facility of the organization."""
    if role is None:
        return frozenset()
    if isinstance(role, (PlatformAdmin, OrgOwner)):
        return None
    if isinstance(role, OrgMember):
        return role.facility_ids
    assert_never(role)


class OrganizationAccessService(BaseService):
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.organization_repository = RepositoryFactory.create_organization_repository(db)
        self.member_repository = RepositoryFactory.create_member_repository(db)
        self.facility_repository = RepositoryFactory.create_facility_repository(db)

    def resolve_actor(self, user_id: str) -> Optional[Actor]:
        """Build the Actor for a user id, or None when the user does not exist."""
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            return None

        memberships = {}
        assigned = {}
        for member in self.member_repository.list_for_user(user.id):
            role = MemberRole(member.role)
            memberships[member.organization_id] = role
            if role == MemberRole.MEMBER:
                assigned[member.organization_id] = frozenset(
                    self.member_repository.assigned_facility_ids(member.id)
                )

        return Actor(
            user_id=user.id,
            email=user.email,
            is_platform_admin=user.is_platform_admin,
            memberships=memberships,
            assigned_facilities=assigned,
        )

    def can_perform_owner_actions(self, actor: Actor, organization_id: Optional[str]) -> bool:
        return is_owner_role(actor.role_in(organization_id))

    def check_organization_access(self, actor: Actor, organization_id: Optional[str]) -> bool:
        return actor.role_in(organization_id) is not None

    def accessible_facility_ids(
        self, actor: Actor, organization_id: str
    ) -> Optional[FrozenSet[str]]:
        return facility_scope(actor.role_in(organization_id))

    @BaseService.measure_operation("invite_member")
    def invite_member(
        self,
        actor: Actor,
        organization_id: str,
        email: str,
        role: str = MemberRole.MEMBER.value,
        facility_ids: Optional[Sequence[str]] = None,
    ) -> Member:
        """
        Add an existing user to an organization as owner or member.

        Raises:
            ValidationException: Role is not "owner"/"member", or a facility is
                not part of the organization
            ForbiddenException: Caller cannot perform owner actions
            NotFoundException: Organization or user does not exist
            ConflictException: User is already a member
        """
        normalized_role = (role or "").strip().lower()
        if normalized_role not in _VALID_MEMBER_ROLES:
            self.logger.warning(
                "Rejected member invitation with invalid role",
                extra={"organization_id": organization_id, "role": role, "actor": actor.user_id},
            )
            raise ValidationException(
                "Role must be 'owner' or 'member'",
                code="INVALID_MEMBER_ROLE",
                details={"role": role},
            )

        if not self.can_perform_owner_actions(actor, organization_id):
            raise ForbiddenException("Only organization owners can invite members")

        if self.organization_repository.get_by_id(organization_id) is None:
            raise NotFoundException("Organization not found")

        user = self.user_repository.get_by_email(email.strip().lower())
        if user is None:
            raise NotFoundException("User not found", details={"email": email})

        if self.member_repository.get_membership(user.id, organization_id) is not None:
            raise ConflictException("User is already a member of this organization")

        requested: List[str] = list(dict.fromkeys(facility_ids or []))
        if requested:
            known = set(self.facility_repository.ids_for_organization(organization_id))
            unknown = [facility_id for facility_id in requested if facility_id not in known]
            if unknown:
                raise ValidationException(
                    "One or more facilities do not belong to this organization",
                    details={"facility_ids": unknown},
                )

        with self.transaction():
            member = self.member_repository.create(
                organization_id=organization_id,
                user_id=user.id,
                role=normalized_role,
            )
            if normalized_role == MemberRole.MEMBER.value:
                for facility_id in requested:
                    self.db.add(FacilityMember(member_id=member.id, facility_id=facility_id))

        self.log_operation(
            "invite_member",
            organization_id=organization_id,
            user_id=user.id,
            role=normalized_role,
        )
        return member
