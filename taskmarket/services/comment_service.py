"""Task comments."""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.config import settings
from taskmarket.core.exceptions import InvariantViolationError, ValidationError
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import Task, TaskStatus
from taskmarket.models.task_activity import TaskComment
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class CommentService:
    """Comments are closed once the task is completed."""

    @staticmethod
    async def add(
        db: AsyncSession,
        task_id: UUID,
        *,
        user_id: str,
        user_name: str,
        text: str,
        now: Optional[datetime] = None,
    ) -> TaskComment:
        if not text or not text.strip():
            raise ValidationError(get_translation("errors.comment_required"))
        now = now or utcnow()

        def _add(task: Task) -> TaskComment:
            if settings.LOCK_COMPLETED_TASKS and task.status == TaskStatus.COMPLETED:
                raise InvariantViolationError(get_translation("errors.task_locked", task_id=task.id))
            comment = TaskComment(user_id=user_id, user_name=user_name, text=text.strip(), created_at=now)
            task.comments.append(comment)
            task.updated_at = now
            return comment

        comment = await task_store.mutate_task(db, task_id, _add)
        logger.debug(f"Comment added to task {task_id} by {user_id}")
        return comment

    @staticmethod
    async def list_comments(db: AsyncSession, task_id: UUID) -> List[TaskComment]:
        task = await task_store.require(db, task_id)
        return list(task.comments)


comment_service = CommentService()
