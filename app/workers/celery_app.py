"""
Celery application configuration.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "eventmate",
    broker=settings.redis_url or None,
    backend=settings.redis_url or None,
    include=[
        "app.workers.swipe_reset",
        "app.workers.notifications",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Swipe quotas roll over on the UTC calendar day
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Refill subscriber swipe allowances just after midnight
    "daily-swipe-reset": {
        "task": "app.workers.swipe_reset.reset_daily_swipe_limits",
        "schedule": crontab(hour=0, minute=5),
    },
}
