"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "tablebook",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Beat runs on restaurant wall-clock time
    timezone=settings.restaurant_timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_routes={
        "send_reservation_email": {"queue": "notifications"},
        "purge_past_table_bookings": {"queue": "maintenance"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "purge-past-table-bookings": {
            "task": "purge_past_table_bookings",
            "schedule": crontab(hour=4, minute=0),  # Nightly, after closing
        },
    },
)
