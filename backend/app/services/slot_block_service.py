# backend/app/services/slot_block_service.py
"""
Slot Block Service for the CourtBook booking engine.

Provider-defined windows during which a court cannot be booked. Recurring
requests are expanded into one row per occurrence at creation time, copying
the wall-clock start and end onto each occurrence date in the platform
timezone. Only organization owners and platform admins may manage blocks.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.constants import WEEKDAYS_RECURRENCE_HORIZON_YEARS
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.slot_block import RecurringType, SlotBlock
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from ..schemas.slot_block import SlotBlockCreate, SlotBlockUpdate, SlotInput
from ..utils.time_windows import iter_days, local_to_utc, platform_tz, to_local
from .base import BaseService, Clock
from .organization_access_service import OrganizationAccessService

logger = logging.getLogger(__name__)

Occurrence = Tuple[datetime, datetime]


class SlotBlockService(BaseService):
    def __init__(
        self,
        db: Session,
        access_service: Optional[OrganizationAccessService] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.slot_block_repository = RepositoryFactory.create_slot_block_repository(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.access_service = access_service or OrganizationAccessService(db, clock=clock)

    @BaseService.measure_operation("create_slot_blocks")
    def create_blocks(self, actor: Actor, payload: SlotBlockCreate) -> List[SlotBlock]:
        """
        Create blocks for every requested slot, expanding recurrence rules.

        Raises:
            NotFoundException: A referenced court does not exist
            ForbiddenException: The actor cannot manage one of the courts
            ValidationException: A recurrence rule is missing its end date
        """
        court_ids = list(dict.fromkeys(slot.court_id for slot in payload.slots))
        courts = self.court_repository.get_many_with_facility(court_ids)
        if len(courts) != len(court_ids):
            raise NotFoundException("One or more courts not found")

        organization_ids = {court.organization_id for court in courts}
        for organization_id in organization_ids:
            if not self.access_service.can_perform_owner_actions(actor, organization_id):
                raise ForbiddenException("Access denied to one or more courts")

        rows: List[Dict[str, Any]] = []
        for slot in payload.slots:
            rows.extend(self._expand_slot(actor, payload, slot))

        with self.transaction():
            blocks = self.slot_block_repository.bulk_create(rows)

        self.log_operation(
            "create_slot_blocks",
            actor_id=actor.user_id,
            court_count=len(court_ids),
            block_count=len(blocks),
            recurring_type=payload.recurring_type.value if payload.recurring_type else None,
        )
        return blocks

    def _expand_slot(
        self, actor: Actor, payload: SlotBlockCreate, slot: SlotInput
    ) -> List[Dict[str, Any]]:
        base = {
            "court_id": slot.court_id,
            "reason": payload.reason.value,
            "notes": payload.notes or None,
            "created_by": actor.user_id,
        }

        if not (payload.is_recurring and payload.recurring_type):
            return [
                {
                    **base,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "is_recurring": False,
                    "recurring_type": None,
                    "recurring_end_date": None,
                    "day_of_week": None,
                }
            ]

        recurring_type = payload.recurring_type
        if recurring_type == RecurringType.WEEKDAYS:
            return [
                {
                    **base,
                    "start_time": start,
                    "end_time": end,
                    "is_recurring": True,
                    "recurring_type": RecurringType.WEEKDAYS.value,
                    "recurring_end_date": None,
                    "day_of_week": None,
                }
                for start, end in weekday_occurrences(slot.start_time, slot.end_time)
            ]

        # Custom recurrence follows the weekly rule
        if payload.recurring_end_date is None:
            raise ValidationException(
                f"End date is required for {recurring_type.value} recurrence"
            )
        day_of_week = to_local(slot.start_time).weekday()
        return [
            {
                **base,
                "start_time": start,
                "end_time": end,
                "is_recurring": True,
                "recurring_type": recurring_type.value,
                "recurring_end_date": payload.recurring_end_date,
                "day_of_week": day_of_week,
            }
            for start, end in weekly_occurrences(
                slot.start_time, slot.end_time, payload.recurring_end_date
            )
        ]

    @BaseService.measure_operation("list_slot_blocks")
    def list_blocks(
        self,
        actor: Actor,
        court_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[SlotBlock]:
        """Blocks the actor may manage, optionally filtered by court and range."""
        blocks = self.slot_block_repository.list_filtered(court_id, start, end)

        access: Dict[str, bool] = {}
        visible: List[SlotBlock] = []
        for block in blocks:
            organization_id = block.court.organization_id if block.court else None
            if organization_id is None:
                continue
            if organization_id not in access:
                access[organization_id] = self.access_service.can_perform_owner_actions(
                    actor, organization_id
                )
            if access[organization_id]:
                visible.append(block)
        return visible

    @BaseService.measure_operation("delete_slot_blocks")
    def delete_blocks(self, actor: Actor, block_ids: Sequence[str]) -> int:
        """Delete every listed block, or none of them if any is off-limits."""
        ids = list(dict.fromkeys(block_id.strip() for block_id in block_ids if block_id.strip()))
        if not ids:
            raise ValidationException("At least one block ID is required")

        blocks = self.slot_block_repository.get_many_with_court(ids)
        if len(blocks) != len(ids) or not all(self._can_manage(actor, block) for block in blocks):
            raise ForbiddenException("Access denied to one or more blocks")

        with self.transaction():
            deleted = self.slot_block_repository.delete_many(ids)

        self.log_operation("delete_slot_blocks", actor_id=actor.user_id, deleted=deleted)
        return deleted

    @BaseService.measure_operation("delete_slot_block")
    def delete_block(self, actor: Actor, block_id: str) -> None:
        block = self.slot_block_repository.get_with_court(block_id)
        if block is None or not self._can_manage(actor, block):
            raise NotFoundException("Slot block not found or access denied")

        with self.transaction():
            self.slot_block_repository.delete(block.id)

    @BaseService.measure_operation("update_slot_block")
    def update_block(self, actor: Actor, block_id: str, payload: SlotBlockUpdate) -> SlotBlock:
        """
        Change reason, notes or times of a single block.

        Only fields present in the payload are touched; notes are trimmed and
        blank notes are cleared.
        """
        block = self.slot_block_repository.get_with_court(block_id)
        if block is None:
            raise NotFoundException("Slot block not found")
        if not self._can_manage(actor, block):
            raise ForbiddenException("Access denied")

        provided = payload.model_fields_set
        start_time = payload.start_time if "start_time" in provided else block.start_time
        end_time = payload.end_time if "end_time" in provided else block.end_time
        if start_time is None or end_time is None or start_time >= end_time:
            raise ValidationException("Start time must be before end time")

        with self.transaction():
            if "reason" in provided and payload.reason is not None:
                block.reason = payload.reason.value
            if "notes" in provided:
                block.notes = (payload.notes or "").strip() or None
            block.start_time = start_time
            block.end_time = end_time
            block.updated_at = self.now()
            self.slot_block_repository.flush()

        return block

    def _can_manage(self, actor: Actor, block: SlotBlock) -> bool:
        organization_id = block.court.organization_id if block.court else None
        if organization_id is None:
            return actor.is_platform_admin
        return self.access_service.can_perform_owner_actions(actor, organization_id)


def _clock_times(start_time: datetime, end_time: datetime):
    tz = platform_tz()
    local_start = to_local(start_time, tz)
    local_end = to_local(end_time, tz)
    day_span = (local_end.date() - local_start.date()).days
    return tz, local_start, local_end, day_span


def _occurrence(day: date, start_time: datetime, end_time: datetime) -> Occurrence:
    tz, local_start, local_end, day_span = _clock_times(start_time, end_time)
    return (
        local_to_utc(day, local_start.time(), tz),
        local_to_utc(day + timedelta(days=day_span), local_end.time(), tz),
    )


def weekly_occurrences(
    start_time: datetime, end_time: datetime, until: date
) -> Iterator[Occurrence]:
    """One occurrence per week on the start's weekday, through until inclusive."""
    local_start = to_local(start_time)
    weekday = local_start.weekday()
    for day in iter_days(local_start.date(), until):
        if day.weekday() == weekday:
            yield _occurrence(day, start_time, end_time)


def weekday_occurrences(start_time: datetime, end_time: datetime) -> Iterator[Occurrence]:
    """Every Monday to Friday from the first weekday on or after the start, for one year."""
    first = to_local(start_time).date()
    while first.weekday() >= 5:
        first += timedelta(days=1)
    for day in iter_days(first, _add_years(first, WEEKDAYS_RECURRENCE_HORIZON_YEARS)):
        if day.weekday() < 5:
            yield _occurrence(day, start_time, end_time)


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 into a non-leap year
        return day.replace(year=day.year + years, day=28)
