"""Celery application and beat schedule."""
from celery import Celery
from celery.signals import setup_logging

from taskmarket.config import settings
from taskmarket.core.logging import configure_logging

celery_app = Celery(
    "taskmarket",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["taskmarket.tasks.recurrence"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    beat_schedule={
        "sweep-due-recurring-tasks": {
            "task": "taskmarket.tasks.recurrence.sweep_due_recurring_tasks",
            "schedule": settings.RECURRENCE_SWEEP_INTERVAL_SECONDS,
        },
    },
)


@setup_logging.connect
def _setup_worker_logging(**kwargs):
    """Use the application log format instead of Celery's default handlers."""
    configure_logging()
