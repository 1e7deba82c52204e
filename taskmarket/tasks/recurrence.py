"""Celery tasks for recurring task maintenance."""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from taskmarket.config import settings
from taskmarket.services.task_engine import TaskEngine
from taskmarket.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

# Each task run gets a fresh event loop, so connections are not pooled across runs
engine = create_async_engine(settings.DATABASE_URL, echo=False, poolclass=NullPool)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@celery_app.task(name="taskmarket.tasks.recurrence.sweep_due_recurring_tasks")
def sweep_due_recurring_tasks():
    """Reset completed recurring tasks that are due again (called by Celery Beat)."""

    async def _sweep():
        report = await TaskEngine(session_factory=AsyncSessionLocal).sweep_due_recurring_tasks()
        return {
            "checked": report.checked,
            "reset": [str(task_id) for task_id in report.reset],
            "failed": [str(task_id) for task_id in report.failed],
        }

    result = asyncio.run(_sweep())
    logger.info(f"Recurrence sweep task finished: {result}")
    return result
