"""Per-task timeline: append-only messages with edit and soft delete."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.config import settings
from taskmarket.core.exceptions import InvariantViolationError, NotFoundError, ValidationError
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import Task, TaskStatus
from taskmarket.models.task_activity import (
    DELETED_MESSAGE_PLACEHOLDER,
    SYSTEM_USER_ID,
    SYSTEM_USER_NAME,
    TimelineMessage,
    UserRole,
)
from taskmarket.services.commission_service import commission_service
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def _find_message(task: Task, message_id: UUID) -> TimelineMessage:
    for message in task.timeline_messages:
        if str(message.id) == str(message_id):
            return message
    raise NotFoundError(get_translation("errors.message_not_found", message_id=message_id))


def _ensure_not_locked(task: Task) -> None:
    if settings.LOCK_COMPLETED_TASKS and task.status == TaskStatus.COMPLETED:
        raise InvariantViolationError(get_translation("errors.task_locked", task_id=task.id))


class TimelineService:
    """Timeline operations.

    Messages are kept in append order. Deleting replaces the content with a
    placeholder and never removes the row. Only the author may edit or delete
    a message; system messages and messages on completed tasks are frozen.
    """

    @staticmethod
    def post(
        task: Task,
        *,
        author_id: str,
        author_name: str,
        role: UserRole,
        content: str,
        is_system_message: bool = False,
        related_to_message_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        """Append a message to a loaded task; the caller commits."""
        now = now or utcnow()
        message = TimelineMessage(
            user_id=author_id,
            user_name=author_name,
            user_type=role,
            content=content,
            timestamp=now,
            is_system_message=is_system_message,
            related_to_message_id=related_to_message_id,
            edited=False,
            is_deleted=False,
        )
        task.timeline_messages.append(message)
        task.updated_at = now
        return message

    @classmethod
    def post_system(
        cls,
        task: Task,
        content: str,
        *,
        author_id: str = SYSTEM_USER_ID,
        author_name: str = SYSTEM_USER_NAME,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        """Append a system message (employer-side)."""
        return cls.post(
            task,
            author_id=author_id,
            author_name=author_name,
            role=UserRole.EMPLOYER,
            content=content,
            is_system_message=True,
            now=now,
        )

    async def append(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        author_id: str,
        author_name: str,
        role: UserRole,
        content: str,
        is_system_message: bool = False,
        related_to_message_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        """Append a message to the task's timeline."""
        if not content or not content.strip():
            raise ValidationError(get_translation("errors.content_required"))

        def _append(task: Task) -> TimelineMessage:
            return self.post(
                task,
                author_id=author_id,
                author_name=author_name,
                role=role,
                content=content,
                is_system_message=is_system_message,
                related_to_message_id=related_to_message_id,
                now=now,
            )

        message = await task_store.mutate_task(db, task_id, _append)
        logger.debug(f"Appended timeline message {message.id} to task {task_id}")
        return message

    async def edit(
        self,
        db: AsyncSession,
        task_id: UUID,
        message_id: UUID,
        *,
        new_content: str,
        editor_id: str,
        editor_role: UserRole,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        """Replace a message's content and mark it edited."""
        if not new_content or not new_content.strip():
            raise ValidationError(get_translation("errors.content_required"))

        def _edit(task: Task) -> TimelineMessage:
            message = _find_message(task, message_id)
            if message.is_deleted:
                raise InvariantViolationError(get_translation("errors.message_deleted"))
            if message.is_system_message:
                raise InvariantViolationError(get_translation("errors.system_message_immutable"))
            if message.user_id != editor_id or message.user_type != editor_role:
                raise InvariantViolationError(get_translation("errors.not_message_author"))
            _ensure_not_locked(task)

            edited_at = now or utcnow()
            message.content = new_content
            message.edited = True
            message.edited_at = edited_at
            task.updated_at = edited_at
            return message

        return await task_store.mutate_task(db, task_id, _edit)

    async def delete(
        self,
        db: AsyncSession,
        task_id: UUID,
        message_id: UUID,
        *,
        actor_id: str,
        actor_role: UserRole,
        now: Optional[datetime] = None,
    ) -> TimelineMessage:
        """Soft-delete a message, keeping the entry in place."""

        def _delete(task: Task) -> TimelineMessage:
            message = _find_message(task, message_id)
            if message.is_deleted:
                return message
            if message.is_system_message:
                raise InvariantViolationError(get_translation("errors.system_message_immutable"))
            if message.user_id != actor_id or message.user_type != actor_role:
                raise InvariantViolationError(get_translation("errors.not_message_author"))
            _ensure_not_locked(task)

            deleted_at = now or utcnow()
            message.content = DELETED_MESSAGE_PLACEHOLDER
            message.is_deleted = True
            message.deleted_at = deleted_at
            task.updated_at = deleted_at
            return message

        return await task_store.mutate_task(db, task_id, _delete)

    @staticmethod
    async def list_messages(
        db: AsyncSession,
        task_id: UUID,
        *,
        include_deleted: bool = True,
    ) -> List[TimelineMessage]:
        """Messages of a task in append order."""
        task = await task_store.require(db, task_id)
        messages = list(task.timeline_messages)
        if not include_deleted:
            messages = [m for m in messages if not m.is_deleted]
        return messages

    @staticmethod
    def _detail_lines(task: Task) -> List[str]:
        lines = [get_translation("timeline.details_header", title=task.title)]
        if task.description:
            lines.append(get_translation("timeline.details_description", description=task.description))
        if task.category:
            lines.append(get_translation("timeline.details_category", category=task.category))
        if task.price:
            lines.append(
                get_translation(
                    "timeline.details_price",
                    price=task.price,
                    earnings=commission_service.net_earnings(task.price),
                    currency=settings.CURRENCY,
                )
            )
        if task.skills:
            lines.append(get_translation("timeline.details_skills", skills=", ".join(task.skills)))
        if task.standard_operating_procedure:
            lines.append(get_translation("timeline.details_sop", sop=task.standard_operating_procedure))
        if task.due_date:
            lines.append(get_translation("timeline.details_due", due_date=task.due_date.strftime("%Y-%m-%d")))
        if task.video_url:
            lines.append(get_translation("timeline.details_video", video_url=task.video_url))
        lines.append(get_translation("timeline.welcome"))
        return lines

    async def post_task_details(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        now: Optional[datetime] = None,
    ) -> List[TimelineMessage]:
        """Post the task details for a newly assigned student, once.

        Returns the posted messages, or an empty list when the details were
        already posted.
        """

        def _post(task: Task) -> List[TimelineMessage]:
            if task.details_posted_to_timeline:
                return []
            if not task.has_active_assignment:
                raise InvariantViolationError(get_translation("errors.no_active_assignment", task_id=task.id))
            posted_at = now or utcnow()
            messages = [self.post_system(task, line, now=posted_at) for line in self._detail_lines(task)]
            task.details_posted_to_timeline = True
            return messages

        messages = await task_store.mutate_task(db, task_id, _post)
        if messages:
            logger.info(f"Posted {len(messages)} detail messages to timeline of task {task_id}")
        return messages


timeline_service = TimelineService()
