# backend/app/repositories/slot_block_repository.py
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ..models.facility import Court, SportCategory
from ..models.slot_block import SlotBlock
from .base_repository import BaseRepository


class SlotBlockRepository(BaseRepository[SlotBlock]):
    def __init__(self, db: Session):
        super().__init__(db, SlotBlock)

    def _with_court(self):
        return self._build_query().options(
            joinedload(SlotBlock.court)
            .joinedload(Court.sport_category)
            .joinedload(SportCategory.facility)
        )

    def get_with_court(self, block_id: str) -> Optional[SlotBlock]:
        return self._execute_first(self._with_court().filter(SlotBlock.id == block_id))

    def get_many_with_court(self, ids: Sequence[str]) -> List[SlotBlock]:
        if not ids:
            return []
        return self._execute_query(self._with_court().filter(SlotBlock.id.in_(list(ids))))

    def list_filtered(
        self,
        court_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[SlotBlock]:
        """
        Blocks optionally narrowed to a court and a range.

        A block matches the range when it starts inside it, ends inside it, or
        spans all of it.
        """
        query = self._with_court()
        if court_id:
            query = query.filter(SlotBlock.court_id == court_id)
        if start is not None and end is not None:
            query = query.filter(
                or_(
                    and_(SlotBlock.start_time >= start, SlotBlock.start_time <= end),
                    and_(SlotBlock.end_time >= start, SlotBlock.end_time <= end),
                    and_(SlotBlock.start_time <= start, SlotBlock.end_time >= end),
                )
            )
        return self._execute_query(query.order_by(SlotBlock.start_time.asc()))

    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        court_id: Optional[str] = None,
        facility_id: Optional[str] = None,
    ) -> List[SlotBlock]:
        """Blocks whose [start_time, end_time) intersects [start, end) on a court or facility."""
        query = self._build_query().filter(SlotBlock.start_time < end, SlotBlock.end_time > start)
        if court_id:
            query = query.filter(SlotBlock.court_id == court_id)
        elif facility_id:
            query = query.join(SlotBlock.court).join(Court.sport_category).filter(
                SportCategory.facility_id == facility_id
            )
        else:
            return []
        return self._execute_query(query.order_by(SlotBlock.start_time.asc()))
