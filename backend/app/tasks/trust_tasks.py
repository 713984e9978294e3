# backend/app/tasks/trust_tasks.py
"""
Celery tasks for trust system maintenance.

Each task opens its own session; the services own their units of work.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from app.core.constants import COMPLETION_BATCH_SIZE
from app.database import get_db_session
from app.services.trust_service import TrustService
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.tasks.trust_tasks.process_completed_bookings",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def process_completed_bookings(self: Any, batch_size: int = COMPLETION_BATCH_SIZE) -> Dict[str, int]:
    """Complete confirmed bookings past their grace period and credit their customers."""
    with get_db_session() as db:
        result = TrustService(db).process_completed_bookings(batch_size=batch_size)
    logger.info(
        "Completion sweep finished",
        extra={"processed": result.processed, "promoted": result.promoted},
    )
    return {"processed": result.processed, "promoted": result.promoted}


@celery_app.task(
    name="app.tasks.trust_tasks.expire_old_strikes",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def expire_old_strikes(self: Any) -> Dict[str, int]:
    """Expire no-show strikes older than 60 days."""
    with get_db_session() as db:
        expired = TrustService(db).expire_old_strikes()
    logger.info("Strike expiry finished", extra={"expired": expired})
    return {"expired": expired}
