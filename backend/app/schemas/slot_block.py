# backend/app/schemas/slot_block.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, model_validator

from ..models.slot_block import RecurringType, SlotBlockReason
from .base import StandardizedModel, StrictRequestModel, UTCDatetime


class SlotInput(StrictRequestModel):
    court_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime

    @model_validator(mode="after")
    def _check_order(self) -> "SlotInput":
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class SlotBlockCreate(StrictRequestModel):
    slots: List[SlotInput] = Field(..., min_length=1)
    reason: SlotBlockReason
    notes: Optional[str] = Field(None, max_length=2000)
    is_recurring: bool = False
    recurring_type: Optional[RecurringType] = None
    recurring_end_date: Optional[date] = None


class SlotBlockUpdate(StrictRequestModel):
    reason: Optional[SlotBlockReason] = None
    notes: Optional[str] = Field(None, max_length=2000)
    start_time: Optional[UTCDatetime] = None
    end_time: Optional[UTCDatetime] = None


class SlotBlockResponse(StandardizedModel):
    id: str
    court_id: str
    start_time: datetime
    end_time: datetime
    reason: str
    notes: Optional[str] = None
    is_recurring: bool
    recurring_type: Optional[str] = None
    recurring_end_date: Optional[date] = None
    day_of_week: Optional[int] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SlotBlockCreateResponse(StandardizedModel):
    message: str
    blocks: List[SlotBlockResponse]


class SlotBlockUpdateResponse(StandardizedModel):
    message: str
    block: SlotBlockResponse


class SlotBlockListResponse(StandardizedModel):
    blocks: List[SlotBlockResponse]


class SlotBlockDeleteResponse(StandardizedModel):
    message: str
    deleted_count: int
