# backend/app/repositories/facility_repository.py
"""Read-only access to facilities, sport categories and courts."""

from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from ..models.facility import Court, Facility, SportCategory
from .base_repository import BaseRepository


class FacilityRepository(BaseRepository[Facility]):
    def __init__(self, db: Session):
        super().__init__(db, Facility)

    def ids_for_organization(self, organization_id: str) -> List[str]:
        rows = self._execute_query(
            self.db.query(Facility.id).filter(Facility.organization_id == organization_id)
        )
        return [row[0] for row in rows]


class CourtRepository(BaseRepository[Court]):
    def __init__(self, db: Session):
        super().__init__(db, Court)

    def _with_facility(self):
        return self._build_query().options(
            joinedload(Court.sport_category).joinedload(SportCategory.facility)
        )

    def get_many_with_facility(self, court_ids: Sequence[str]) -> List[Court]:
        if not court_ids:
            return []
        return self._execute_query(self._with_facility().filter(Court.id.in_(list(court_ids))))

    def list_active_for_organization(
        self,
        organization_id: str,
        facility_ids: Optional[Sequence[str]] = None,
        sport_category_ids: Optional[Sequence[str]] = None,
    ) -> List[Court]:
        """Active courts, ordered by facility name, category name, court name."""
        query = (
            self._with_facility()
            .join(Court.sport_category)
            .join(SportCategory.facility)
            .filter(Facility.organization_id == organization_id, Court.is_active.is_(True))
        )
        if facility_ids is not None:
            query = query.filter(Facility.id.in_(list(facility_ids)))
        if sport_category_ids:
            query = query.filter(Court.sport_category_id.in_(list(sport_category_ids)))
        return self._execute_query(
            query.order_by(Facility.name.asc(), SportCategory.name.asc(), Court.name.asc())
        )
