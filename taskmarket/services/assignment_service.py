"""Student capacity and reassignment."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.core.exceptions import InvariantViolationError
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import AssignmentStatus, Task, TaskStatus
from taskmarket.services.audit_service import audit_service
from taskmarket.services.commission_service import commission_service
from taskmarket.services.timeline_service import timeline_service
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# (threshold, limit) pairs, ascending
COMPLETED_TASK_STEPS = ((10, 2), (25, 3), (50, 4))
EARNINGS_STEPS = ((10_000, 2), (25_000, 3), (50_000, 4), (100_000, 5), (250_000, 6), (500_000, 7))


@dataclass
class Eligibility:
    """Whether a student may take on another task."""

    can_apply: bool
    reason: Optional[str] = None
    active_count: int = 0
    limit: int = 1

    def __bool__(self) -> bool:
        return self.can_apply


def _step(value: float, steps) -> int:
    limit = 1
    for threshold, step_limit in steps:
        if value >= threshold:
            limit = step_limit
    return limit


def _net_total(tasks) -> int:
    return sum(commission_service.net_earnings(t.price or 0) for t in tasks)


class AssignmentService:
    """Enforces how many tasks a student can hold at once."""

    @staticmethod
    def task_limit(completed_count: int, total_earnings: float) -> int:
        """Concurrent task limit: the higher of the completed-count and earnings ladders."""
        return max(_step(completed_count, COMPLETED_TASK_STEPS), _step(total_earnings, EARNINGS_STEPS))

    @staticmethod
    async def student_earnings(db: AsyncSession, student_id: str) -> int:
        """Net earnings over the student's completed tasks."""
        completed = await task_store.get_completed_for_student(db, student_id=student_id)
        return _net_total(completed)

    async def can_apply(self, db: AsyncSession, student_id: str) -> Eligibility:
        """Check the student's active task count against their limit."""
        active = await task_store.get_active_for_student(db, student_id=student_id)
        completed = await task_store.get_completed_for_student(db, student_id=student_id)
        earnings = _net_total(completed)
        limit = self.task_limit(len(completed), earnings)

        if len(active) >= limit:
            return Eligibility(
                can_apply=False,
                reason=get_translation("errors.task_limit", limit=limit),
                active_count=len(active),
                limit=limit,
            )
        return Eligibility(can_apply=True, active_count=len(active), limit=limit)

    async def reassign(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        reason: str,
        actor_id: str,
        actor_name: str,
        now: Optional[datetime] = None,
    ) -> Task:
        """Release the current student and put the task back on the marketplace.

        Applications and timeline history are kept.
        """
        now = now or utcnow()

        def _reassign(task: Task) -> Task:
            if task.is_library_item or task.status in (TaskStatus.COMPLETED, TaskStatus.ARCHIVED):
                raise InvariantViolationError(get_translation("errors.task_not_open", task_id=task.id))
            if not task.has_active_assignment:
                raise InvariantViolationError(get_translation("errors.no_active_assignment", task_id=task.id))

            previous = task.assignment_student_id
            task.assignment_status = AssignmentStatus.REASSIGNED
            task.assignee_id = None
            task.is_published = True
            task.published_at = now
            if task.status in (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW):
                task.status = TaskStatus.PUBLISHED
            timeline_service.post_system(
                task,
                get_translation("timeline.reassigned", reason=reason),
                author_id=actor_id,
                author_name=actor_name,
                now=now,
            )
            audit_service.record(
                task,
                user_id=actor_id,
                user_name=actor_name,
                action=get_translation("audit.reassigned", reason=reason),
                now=now,
            )
            task.updated_at = now
            logger.info(f"Task {task.id} reassigned away from student {previous}: {reason}")
            return task

        return await task_store.mutate_task(db, task_id, _reassign)


assignment_service = AssignmentService()
