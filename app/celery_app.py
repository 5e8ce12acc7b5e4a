"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "civic_projects",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.media_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
)

# Configure Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "reconcile-media": {
        "task": "app.tasks.media_tasks.reconcile_media_task",
        "schedule": crontab(hour=settings.media_sweep_hour, minute=0),
        "options": {"expires": 3600},  # Task expires after 1 hour
    },
}

celery_app.conf.task_routes = {
    "app.tasks.media_tasks.*": {"queue": "maintenance"},
}
