# backend/app/routes/v1/slot_blocks.py
"""
Slot block routes - API v1

Versioned endpoints under /api/v1/slot-blocks for organization owners.

Endpoints:
    POST / - Create blocks, expanding recurrence rules
    GET / - List manageable blocks, optionally by court and time range
    DELETE / - Bulk delete by comma-separated ids (all or nothing)
    DELETE /{block_id} - Delete a single block
    PATCH /{block_id} - Update reason, notes or times of a single block
"""

from datetime import datetime
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...api.dependencies import get_current_actor, get_slot_block_service
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.base_responses import SuccessResponse
from ...schemas.slot_block import (
    SlotBlockCreate,
    SlotBlockCreateResponse,
    SlotBlockDeleteResponse,
    SlotBlockListResponse,
    SlotBlockResponse,
    SlotBlockUpdate,
    SlotBlockUpdateResponse,
)
from ...services.slot_block_service import SlotBlockService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["slot-blocks-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "",
    response_model=SlotBlockCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_slot_blocks(
    payload: SlotBlockCreate,
    actor: Actor = Depends(get_current_actor),
    service: SlotBlockService = Depends(get_slot_block_service),
) -> SlotBlockCreateResponse:
    try:
        blocks = service.create_blocks(actor, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return SlotBlockCreateResponse(
        message=f"Successfully created {len(blocks)} block(s)",
        blocks=[SlotBlockResponse.model_validate(block) for block in blocks],
    )


@router.get("", response_model=SlotBlockListResponse)
def list_slot_blocks(
    court_id: Optional[str] = Query(None, alias="courtId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    actor: Actor = Depends(get_current_actor),
    service: SlotBlockService = Depends(get_slot_block_service),
) -> SlotBlockListResponse:
    try:
        blocks = service.list_blocks(actor, court_id=court_id, start=start_date, end=end_date)
    except DomainException as e:
        handle_domain_exception(e)
    return SlotBlockListResponse(
        blocks=[SlotBlockResponse.model_validate(block) for block in blocks]
    )


@router.delete("", response_model=SlotBlockDeleteResponse)
def delete_slot_blocks(
    ids: str = Query("", description="Comma-separated slot block ids"),
    actor: Actor = Depends(get_current_actor),
    service: SlotBlockService = Depends(get_slot_block_service),
) -> SlotBlockDeleteResponse:
    try:
        deleted = service.delete_blocks(actor, ids.split(","))
    except DomainException as e:
        handle_domain_exception(e)
    return SlotBlockDeleteResponse(
        message=f"Successfully deleted {deleted} block(s)",
        deleted_count=deleted,
    )


@router.delete("/{block_id}", response_model=SuccessResponse)
def delete_slot_block(
    block_id: str,
    actor: Actor = Depends(get_current_actor),
    service: SlotBlockService = Depends(get_slot_block_service),
) -> SuccessResponse:
    try:
        service.delete_block(actor, block_id)
    except DomainException as e:
        handle_domain_exception(e)
    return SuccessResponse(message="Slot block deleted successfully")


@router.patch("/{block_id}", response_model=SlotBlockUpdateResponse)
def update_slot_block(
    block_id: str,
    payload: SlotBlockUpdate,
    actor: Actor = Depends(get_current_actor),
    service: SlotBlockService = Depends(get_slot_block_service),
) -> SlotBlockUpdateResponse:
    try:
        block = service.update_block(actor, block_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return SlotBlockUpdateResponse(
        message="Slot block updated successfully",
        block=SlotBlockResponse.model_validate(block),
    )
