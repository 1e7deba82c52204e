"""Task creation, updates and status lifecycle."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.config import settings
from taskmarket.core.exceptions import InvariantViolationError, NotFoundError, ValidationError
from taskmarket.crud.project import campaign as crud_campaign
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import (
    AssignmentStatus,
    LIBRARY_STATUSES,
    RECURRING_STATUSES,
    Task,
    TaskPriority,
    TaskStatus,
    recurring_status_for,
)
from taskmarket.schemas.common import Actor
from taskmarket.schemas.task import TaskCreate, TaskUpdate
from taskmarket.services.audit_service import audit_service
from taskmarket.utils.timeutils import as_naive_utc, utcnow
from taskmarket.utils.youtube import is_valid_youtube_url

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    TaskStatus.DRAFT: {TaskStatus.PUBLISHED, TaskStatus.ARCHIVED},
    TaskStatus.PUBLISHED: {
        TaskStatus.DRAFT,
        TaskStatus.IN_PROGRESS,
        TaskStatus.REVIEW,
        TaskStatus.COMPLETED,
        TaskStatus.ARCHIVED,
    },
    TaskStatus.IN_PROGRESS: {
        TaskStatus.PUBLISHED,
        TaskStatus.REVIEW,
        TaskStatus.COMPLETED,
        TaskStatus.ARCHIVED,
    },
    TaskStatus.REVIEW: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.ARCHIVED},
    TaskStatus.COMPLETED: {TaskStatus.ARCHIVED},
    TaskStatus.ARCHIVED: {TaskStatus.DRAFT, TaskStatus.PUBLISHED},
}
for _recurring in RECURRING_STATUSES:
    ALLOWED_TRANSITIONS[_recurring] = (set(RECURRING_STATUSES) - {_recurring}) | {TaskStatus.ARCHIVED}
for _library in LIBRARY_STATUSES:
    ALLOWED_TRANSITIONS[_library] = set()

COMPLETABLE_STATUSES = (TaskStatus.PUBLISHED, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW)
UNPUBLISHED_STATUSES = (TaskStatus.DRAFT, TaskStatus.ARCHIVED)


def is_transition_allowed(current: TaskStatus, target: TaskStatus) -> bool:
    """Whether a task may move from ``current`` to ``target``."""
    current, target = TaskStatus(current), TaskStatus(target)
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


def _illegal(current: TaskStatus, target: TaskStatus) -> InvariantViolationError:
    return InvariantViolationError(
        get_translation("errors.illegal_transition", current=TaskStatus(current).value, target=TaskStatus(target).value)
    )


def _validate_fields(data: Dict[str, Any]) -> None:
    if "title" in data and (data["title"] is None or not data["title"].strip()):
        raise ValidationError(get_translation("errors.title_required"))
    if data.get("price") is not None and data["price"] < 0:
        raise ValidationError(get_translation("errors.price_negative"))
    if data.get("video_url") and not is_valid_youtube_url(data["video_url"]):
        raise ValidationError(get_translation("errors.invalid_video_url"))


class TaskLifecycleService:
    """Owns the task state machine.

    Ordinary tasks move ``draft -> published -> in_progress -> review ->
    completed`` with ``archived`` as a side branch. Recurring tasks stay in
    their own lane and library items never change status.
    """

    @staticmethod
    def _apply_status(task: Task, target: TaskStatus, now: datetime) -> None:
        task.status = target
        if target == TaskStatus.COMPLETED:
            task.completed_at = now
            if task.assignment_status == AssignmentStatus.ACTIVE:
                task.assignment_status = AssignmentStatus.COMPLETED
        elif target in UNPUBLISHED_STATUSES:
            task.is_published = False
        elif target == TaskStatus.PUBLISHED and not task.is_published:
            task.is_published = True
            task.published_at = now

    @classmethod
    def _change_status(cls, task: Task, target: TaskStatus, now: datetime) -> None:
        if task.is_library_item and target != task.status:
            raise _illegal(task.status, target)
        if target in LIBRARY_STATUSES and target != task.status:
            raise _illegal(task.status, target)
        if settings.STRICT_STATUS_TRANSITIONS and not is_transition_allowed(task.status, target):
            raise _illegal(task.status, target)
        cls._apply_status(task, target, now)

    async def create(
        self,
        db: AsyncSession,
        campaign_id: UUID,
        obj_in: TaskCreate,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Create a marketplace or recurring task in a campaign."""
        now = now or utcnow()
        _validate_fields(obj_in.model_dump())

        if await crud_campaign.get(db, campaign_id) is None:
            raise NotFoundError(get_translation("errors.campaign_not_found", campaign_id=campaign_id))

        if obj_in.recurrence is not None:
            status = recurring_status_for(obj_in.recurrence)
        else:
            status = TaskStatus(obj_in.status)
        if status in LIBRARY_STATUSES:
            raise ValidationError(get_translation("errors.library_status_on_create"))

        is_published = status not in UNPUBLISHED_STATUSES
        due_date = as_naive_utc(obj_in.due_date)
        db_obj = Task(
            campaign_id=campaign_id,
            title=obj_in.title.strip(),
            description=obj_in.description,
            status=status,
            priority=obj_in.priority,
            category=obj_in.category,
            price=obj_in.price,
            due_date=due_date,
            video_url=obj_in.video_url or None,
            skills=list(obj_in.skills),
            estimated_hours=obj_in.estimated_hours,
            standard_operating_procedure=obj_in.standard_operating_procedure,
            created_by=actor.id,
            is_published=is_published,
            published_at=now if is_published else None,
            completed_at=now if status == TaskStatus.COMPLETED else None,
            auto_post_to_timeline=obj_in.auto_post_to_timeline,
            next_due_date=due_date if status in RECURRING_STATUSES else None,
            is_recurring_completed=False,
            created_at=now,
            updated_at=now,
        )
        audit_service.record(
            db_obj,
            user_id=actor.id,
            user_name=actor.name,
            action=get_translation("audit.created"),
            now=now,
        )
        db_obj = await task_store.add(db, db_obj)
        logger.info(f"Task {db_obj.id} created in campaign {campaign_id} with status {status.value}")
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        task_id: UUID,
        obj_in: TaskUpdate,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Merge the set fields into the task."""
        now = now or utcnow()
        update_data = obj_in.model_dump(exclude_unset=True)
        _validate_fields(update_data)
        if "title" in update_data:
            update_data["title"] = update_data["title"].strip()
        if "due_date" in update_data:
            update_data["due_date"] = as_naive_utc(update_data["due_date"])
        target_status = update_data.pop("status", None)

        def _update(task: Task) -> Task:
            if target_status is not None and target_status != task.status:
                self._change_status(task, target_status, now)
            for field, value in update_data.items():
                setattr(task, field, value)

            fields = sorted(update_data) + (["status"] if target_status is not None else [])
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.updated", fields=", ".join(fields) or "nothing"),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _update)

    async def update_status(
        self,
        db: AsyncSession,
        task_id: UUID,
        status: TaskStatus,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Move the task to another status."""
        now = now or utcnow()
        status = TaskStatus(status)

        def _update(task: Task) -> Task:
            self._change_status(task, status, now)
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.status_changed", status=status.value),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _update)

    async def update_priority(
        self,
        db: AsyncSession,
        task_id: UUID,
        priority: TaskPriority,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        now = now or utcnow()
        priority = TaskPriority(priority)

        def _update(task: Task) -> Task:
            task.priority = priority
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.priority_changed", priority=priority.value),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _update)

    async def toggle_publish(
        self,
        db: AsyncSession,
        task_id: UUID,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Flip ``is_published``; publishing stamps ``published_at``."""
        now = now or utcnow()

        def _toggle(task: Task) -> Task:
            if task.is_library_item:
                raise InvariantViolationError(get_translation("errors.task_not_open", task_id=task.id))
            task.is_published = not task.is_published
            if task.is_published:
                task.published_at = now
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.published" if task.is_published else "audit.unpublished"),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _toggle)

    async def toggle_auto_post_to_timeline(
        self,
        db: AsyncSession,
        task_id: UUID,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Flip automatic timeline posting (unset counts as enabled)."""
        now = now or utcnow()

        def _toggle(task: Task) -> Task:
            task.auto_post_to_timeline = not task.auto_post_enabled
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.auto_post_toggled", value=task.auto_post_to_timeline),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _toggle)

    async def mark_completed(
        self,
        db: AsyncSession,
        task_id: UUID,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Close an ordinary task; its active assignment becomes completed."""
        now = now or utcnow()

        def _complete(task: Task) -> Task:
            if task.status not in COMPLETABLE_STATUSES:
                raise _illegal(task.status, TaskStatus.COMPLETED)
            self._apply_status(task, TaskStatus.COMPLETED, now)
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.completed"),
                now=now,
            )
            task.updated_at = now
            return task

        task = await task_store.mutate_task(db, task_id, _complete)
        logger.info(f"Task {task_id} marked completed by {actor.id}")
        return task

    @staticmethod
    async def delete(db: AsyncSession, task_id: UUID) -> Task:
        """Remove a task and everything it owns."""
        task = await task_store.delete_task(db, task_id)
        logger.info(f"Task {task_id} deleted")
        return task


task_lifecycle_service = TaskLifecycleService()
