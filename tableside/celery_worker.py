"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run:
    celery -A tableside.celery_worker.celery_app worker --loglevel=info
    celery -A tableside.celery_worker.celery_app beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from tableside.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tableside_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["tableside.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Results expire after 1 hour
    result_expires=3600,

    # Acknowledge after completion, requeue if the worker dies
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,

    beat_schedule={
        "purge-expired-ai-sessions": {
            "task": "tableside.tasks.purge_expired_ai_sessions",
            "schedule": crontab(hour=3, minute=0),
        },
        "expire-stale-checkouts": {
            "task": "tableside.tasks.expire_stale_checkouts",
            "schedule": crontab(minute=15),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
