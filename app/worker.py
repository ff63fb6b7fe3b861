"""Celery worker configuration.

Background work is limited to housekeeping reports; booking state is only
ever changed through the API.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "unistay_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Africa/Nairobi",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Report bookings stuck awaiting payment daily at 8 AM EAT
        "report-stale-payment-bookings": {
            "task": "app.tasks.report_stale_payment_bookings",
            "schedule": crontab(hour=8, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
