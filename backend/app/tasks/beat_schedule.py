# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule for CourtBook trust maintenance.

- Completion sweep: hourly, credits bookings that ended more than two hours ago
- Strike expiry: daily, returns strikes older than 60 days
"""

from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    "process-completed-bookings": {
        "task": "app.tasks.trust_tasks.process_completed_bookings",
        "schedule": crontab(minute=5),  # Hourly at :05
        "options": {"queue": "maintenance", "priority": 5},
    },
    "expire-old-strikes": {
        "task": "app.tasks.trust_tasks.expire_old_strikes",
        "schedule": crontab(hour=3, minute=15),  # Daily at 3:15 AM
        "options": {"queue": "maintenance", "priority": 3},
    },
}

# Local runs sweep more often so trust changes show up while testing by hand
DEVELOPMENT_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "process-completed-bookings": {"schedule": crontab(minute="*/10")},
}


def get_beat_schedule(environment: str = "production") -> Dict[str, Dict[str, Any]]:
    """Return the beat schedule for an environment."""
    schedule = {name: dict(entry) for name, entry in CELERYBEAT_SCHEDULE.items()}
    if environment != "production":
        for name, override in DEVELOPMENT_OVERRIDES.items():
            schedule[name].update(override)
    return schedule
