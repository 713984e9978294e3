# backend/app/repositories/organization_repository.py
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.organization import FacilityMember, Member, Organization
from .base_repository import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    def __init__(self, db: Session):
        super().__init__(db, Organization)


class MemberRepository(BaseRepository[Member]):
    def __init__(self, db: Session):
        super().__init__(db, Member)

    def get_membership(self, user_id: str, organization_id: str) -> Optional[Member]:
        return self.find_one_by(user_id=user_id, organization_id=organization_id)

    def list_for_user(self, user_id: str) -> List[Member]:
        return self.find_by(user_id=user_id)

    def assigned_facility_ids(self, member_id: str) -> List[str]:
        rows = self._execute_query(
            self.db.query(FacilityMember.facility_id).filter(FacilityMember.member_id == member_id)
        )
        return [row[0] for row in rows]
