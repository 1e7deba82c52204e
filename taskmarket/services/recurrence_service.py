"""Recurring task completion and the periodic due sweep."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.core.exceptions import InvariantViolationError
from taskmarket.core.metrics import recurrence_sweep_duration_seconds, recurrence_tasks_reset_total
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import RecurrenceType, Task
from taskmarket.models.task_activity import RecurrenceRecord
from taskmarket.services.audit_service import audit_service
from taskmarket.services.timeline_service import timeline_service
from taskmarket.utils.timeutils import as_naive_utc, utcnow

logger = logging.getLogger(__name__)

RECURRENCE_STEPS = {
    RecurrenceType.DAILY: relativedelta(days=1),
    RecurrenceType.WEEKLY: relativedelta(weeks=1),
    RecurrenceType.MONTHLY: relativedelta(months=1),
}


@dataclass
class SweepReport:
    """Outcome of one sweep run."""

    checked: int = 0
    reset: List[UUID] = field(default_factory=list)
    failed: List[UUID] = field(default_factory=list)


def _require_recurring(task: Task) -> RecurrenceType:
    recurrence = task.recurrence_type
    if recurrence is None:
        raise InvariantViolationError(get_translation("errors.not_recurring", task_id=task.id))
    return recurrence


class RecurrenceService:
    """Completion toggling and due resets for ``recurring_*`` tasks."""

    @staticmethod
    def advance(due: datetime, recurrence: RecurrenceType) -> datetime:
        """Add one recurrence unit; monthly steps clamp to the month end."""
        return due + RECURRENCE_STEPS[RecurrenceType(recurrence)]

    def _complete(self, task: Task, recurrence: RecurrenceType, *, user_id: str, user_name: str, now: datetime) -> None:
        next_due = self.advance(now, recurrence)
        task.recurrence_history.append(
            RecurrenceRecord(
                completed_at=now,
                completed_by=user_name,
                next_due_date=next_due,
                previous_last_completed_at=task.last_completed_at,
                previous_next_due_date=task.next_due_date,
            )
        )
        task.is_recurring_completed = True
        task.last_completed_at = now
        task.next_due_date = next_due
        audit_service.record(
            task,
            user_id=user_id,
            user_name=user_name,
            action=get_translation("audit.recurring_completed"),
            now=now,
        )
        if task.auto_post_enabled:
            timeline_service.post_system(
                task,
                get_translation("timeline.recurring_completed", next_due=next_due.strftime("%Y-%m-%d")),
                author_id=user_id,
                author_name=user_name,
                now=now,
            )

    @staticmethod
    def _uncomplete(task: Task, *, user_id: str, user_name: str, now: datetime) -> None:
        task.is_recurring_completed = False
        if task.recurrence_history:
            record = task.recurrence_history.pop()
            task.last_completed_at = record.previous_last_completed_at
            task.next_due_date = record.previous_next_due_date
        audit_service.record(
            task,
            user_id=user_id,
            user_name=user_name,
            action=get_translation("audit.recurring_incomplete"),
            now=now,
        )
        if task.auto_post_enabled:
            timeline_service.post_system(
                task,
                get_translation("timeline.recurring_incomplete"),
                author_id=user_id,
                author_name=user_name,
                now=now,
            )

    async def toggle_completion(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        user_id: str,
        user_name: str,
        now: Optional[datetime] = None,
    ) -> Task:
        """Flip ``is_recurring_completed``; undoing restores the prior due dates."""
        now = as_naive_utc(now) or utcnow()

        def _toggle(task: Task) -> Task:
            recurrence = _require_recurring(task)
            if task.is_recurring_completed:
                self._uncomplete(task, user_id=user_id, user_name=user_name, now=now)
            else:
                self._complete(task, recurrence, user_id=user_id, user_name=user_name, now=now)
            task.updated_at = now
            return task

        task = await task_store.mutate_task(db, task_id, _toggle)
        logger.info(
            f"Recurring task {task_id} marked "
            f"{'completed' if task.is_recurring_completed else 'incomplete'} by {user_id}"
        )
        return task

    async def reset_if_due(self, db: AsyncSession, task_id: UUID, *, now: datetime) -> bool:
        """Reopen one completed recurring task if its due date has passed."""

        def _reset(task: Task) -> bool:
            recurrence = task.recurrence_type
            if recurrence is None or not task.is_recurring_completed:
                return False
            if task.next_due_date is None or task.next_due_date > now:
                return False
            task.is_recurring_completed = False
            task.next_due_date = self.advance(task.next_due_date, recurrence)
            timeline_service.post_system(task, get_translation("timeline.due_again"), now=now)
            task.updated_at = now
            return True

        return await task_store.mutate_task(db, task_id, _reset)

    async def sweep_due_tasks(self, db: AsyncSession, now: Optional[datetime] = None) -> SweepReport:
        """Reset every completed recurring task that is due again.

        Each task is handled in its own transaction; a failure is logged and
        the sweep moves on.
        """
        now = as_naive_utc(now) or utcnow()
        report = SweepReport()
        started = time.perf_counter()

        task_ids = await task_store.get_due_recurring_ids(db, now=now)
        report.checked = len(task_ids)
        for task_id in task_ids:
            try:
                if await self.reset_if_due(db, task_id, now=now):
                    report.reset.append(task_id)
            except Exception as exc:
                logger.error(f"Failed to reset recurring task {task_id}: {exc}", exc_info=True)
                report.failed.append(task_id)

        recurrence_sweep_duration_seconds.observe(time.perf_counter() - started)
        if report.reset:
            recurrence_tasks_reset_total.inc(len(report.reset))
        logger.info(
            f"Recurrence sweep checked {report.checked} tasks, "
            f"reset {len(report.reset)}, failed {len(report.failed)}"
        )
        return report


recurrence_service = RecurrenceService()
