# backend/app/repositories/no_show_report_repository.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.no_show_report import NoShowReport, NoShowStatus
from .base_repository import BaseRepository


class NoShowReportRepository(BaseRepository[NoShowReport]):
    def __init__(self, db: Session):
        super().__init__(db, NoShowReport)

    def get_by_booking_id(self, booking_id: str) -> Optional[NoShowReport]:
        return self.find_one_by(booking_id=booking_id)

    def count_active_since(self, user_id: str, since: datetime) -> int:
        query = self.db.query(func.count(NoShowReport.id)).filter(
            NoShowReport.user_id == user_id,
            NoShowReport.status == NoShowStatus.ACTIVE.value,
            NoShowReport.reported_at >= since,
        )
        return int(self._execute_scalar(query) or 0)

    def oldest_active(self, user_id: str, limit: int) -> List[NoShowReport]:
        if limit <= 0:
            return []
        query = (
            self._build_query()
            .filter(
                NoShowReport.user_id == user_id,
                NoShowReport.status == NoShowStatus.ACTIVE.value,
            )
            .order_by(NoShowReport.reported_at.asc(), NoShowReport.id.asc())
            .limit(limit)
        )
        return self._execute_query(query)

    def active_reported_before(self, cutoff: datetime) -> List[NoShowReport]:
        query = self._build_query().filter(
            NoShowReport.status == NoShowStatus.ACTIVE.value,
            NoShowReport.reported_at < cutoff,
        )
        return self._execute_query(query.with_for_update())
