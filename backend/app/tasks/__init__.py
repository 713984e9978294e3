# backend/app/tasks/__init__.py
"""
Celery tasks package for CourtBook.

Importing the package registers every task with the Celery app.
"""

from app.tasks.celery_app import BaseTask, celery_app
from app.tasks.trust_tasks import expire_old_strikes, process_completed_bookings

__all__ = [
    "BaseTask",
    "celery_app",
    "expire_old_strikes",
    "process_completed_bookings",
]
