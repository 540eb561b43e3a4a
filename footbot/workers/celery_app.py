"""
Celery Application Configuration
"""
from celery import Celery

from footbot.core.config import settings

celery_app = Celery(
    "footbot",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["footbot.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "cleanup-live-event-notifications-daily": {
        "task": "footbot.workers.tasks.purge_live_event_notifications",
        "schedule": 86400.0,  # 24 hours
    },
}

# במצב inprocess הטיימר רץ בתהליך ה-web ו-beat לא מתזמן poll
if settings.LIVE_EVENTS_RUNNER == "celery":
    celery_app.conf.beat_schedule["poll-live-events"] = {
        "task": "footbot.workers.tasks.poll_live_events",
        "schedule": float(settings.LIVE_EVENTS_INTERVAL_SECONDS),
    }
