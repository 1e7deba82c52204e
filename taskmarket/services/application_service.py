"""Student applications: submission, approval and rejection."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.config import settings
from taskmarket.core.exceptions import (
    InvariantViolationError,
    LimitExceededError,
    NotFoundError,
)
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import Task, TaskStatus
from taskmarket.models.task_activity import (
    SYSTEM_USER_ID,
    SYSTEM_USER_NAME,
    ApplicationStatus,
    TaskApplication,
)
from taskmarket.services.assignment_service import assignment_service
from taskmarket.services.audit_service import audit_service
from taskmarket.services.timeline_service import timeline_service
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (TaskStatus.DRAFT, TaskStatus.COMPLETED, TaskStatus.ARCHIVED)


def _find_application(task: Task, application_id: UUID) -> TaskApplication:
    for application in task.applications:
        if str(application.id) == str(application_id):
            return application
    raise NotFoundError(get_translation("errors.application_not_found", application_id=application_id))


def _find_student_application(task: Task, student_id: str) -> Optional[TaskApplication]:
    return next((a for a in task.applications if a.student_id == student_id), None)


def _ensure_open(task: Task) -> None:
    if (
        not task.is_published
        or task.is_library_item
        or task.status in CLOSED_STATUSES
        or task.has_active_assignment
    ):
        raise InvariantViolationError(get_translation("errors.task_not_open", task_id=task.id))


class ApplicationService:
    """Application workflow for a single task."""

    async def submit(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        student_id: str,
        student_name: str,
        student_email: str,
        note: str = "",
        now: Optional[datetime] = None,
    ) -> TaskApplication:
        """Record a pending application after checking the student's capacity."""
        now = now or utcnow()
        # Fail fast on a missing task before the capacity queries
        await task_store.require(db, task_id)

        if settings.ENFORCE_APPLICATION_LIMIT:
            eligibility = await assignment_service.can_apply(db, student_id)
            if not eligibility.can_apply:
                logger.info(
                    f"Student {student_id} at capacity ({eligibility.active_count}/{eligibility.limit}), "
                    f"application to task {task_id} rejected"
                )
                raise LimitExceededError(eligibility.reason)

        def _submit(task: Task) -> TaskApplication:
            _ensure_open(task)
            if _find_student_application(task, student_id) is not None:
                raise InvariantViolationError(get_translation("errors.already_applied", student_id=student_id))
            application = TaskApplication(
                student_id=student_id,
                student_name=student_name,
                student_email=student_email,
                note=note or "",
                status=ApplicationStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            task.applications.append(application)
            task.updated_at = now
            return application

        application = await task_store.mutate_task(db, task_id, _submit)
        logger.info(f"Student {student_id} applied to task {task_id}")
        return application

    async def update_status(
        self,
        db: AsyncSession,
        task_id: UUID,
        application_id: UUID,
        *,
        new_status: ApplicationStatus,
        actor_id: Optional[str] = None,
        actor_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaskApplication:
        """Approve, reject or reset an application.

        Approval binds the task to the student and asks for the task details
        to be posted to the timeline again.
        """
        now = now or utcnow()
        new_status = ApplicationStatus(new_status)
        actor_id = actor_id or SYSTEM_USER_ID
        actor_name = actor_name or SYSTEM_USER_NAME

        async def _update(task: Task) -> TaskApplication:
            application = _find_application(task, application_id)
            holds_assignment = (
                task.has_active_assignment and task.assignment_student_id == application.student_id
            )

            if new_status == ApplicationStatus.APPROVED:
                if task.has_active_assignment and not holds_assignment:
                    raise InvariantViolationError(get_translation("errors.already_assigned", task_id=task.id))
                if holds_assignment and application.status == ApplicationStatus.APPROVED:
                    return application
                if settings.ENFORCE_APPLICATION_LIMIT and not holds_assignment:
                    eligibility = await assignment_service.can_apply(db, application.student_id)
                    if not eligibility.can_apply:
                        logger.info(
                            f"Student {application.student_id} at capacity "
                            f"({eligibility.active_count}/{eligibility.limit}), approval on task {task_id} refused"
                        )
                        raise LimitExceededError(eligibility.reason)
                self._approve(task, application, actor_id=actor_id, actor_name=actor_name, now=now)
            else:
                if holds_assignment:
                    raise InvariantViolationError(get_translation("errors.application_assigned"))
                application.status = new_status
                application.updated_at = now

            audit_service.record(
                task,
                user_id=actor_id,
                user_name=actor_name,
                action=get_translation(
                    "audit.application_status",
                    student_name=application.student_name,
                    status=new_status.value,
                ),
                now=now,
            )
            task.updated_at = now
            return application

        application = await task_store.mutate_task(db, task_id, _update)
        logger.info(f"Application {application_id} on task {task_id} set to {new_status.value}")
        return application

    @staticmethod
    def _approve(task: Task, application: TaskApplication, *, actor_id: str, actor_name: str, now: datetime) -> None:
        application.status = ApplicationStatus.APPROVED
        application.updated_at = now
        task.assign(
            student_id=application.student_id,
            student_name=application.student_name,
            student_email=application.student_email,
            assigned_at=now,
        )
        task.details_posted_to_timeline = False
        timeline_service.post_system(
            task,
            get_translation("timeline.assigned", student_name=application.student_name),
            author_id=actor_id,
            author_name=actor_name,
            now=now,
        )
        if settings.AUTO_REJECT_COMPETING_APPLICATIONS:
            for other in task.applications:
                if other is not application and other.status == ApplicationStatus.PENDING:
                    other.status = ApplicationStatus.REJECTED
                    other.updated_at = now

    @staticmethod
    async def get_student_application(
        db: AsyncSession,
        task_id: UUID,
        student_id: str,
    ) -> Optional[TaskApplication]:
        """The student's application on a task, if any."""
        task = await task_store.require(db, task_id)
        return _find_student_application(task, student_id)


application_service = ApplicationService()
