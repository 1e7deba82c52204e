"""Per-task audit trail."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.crud.task import task as task_store
from taskmarket.models.task import Task
from taskmarket.models.task_activity import TaskEditHistory
from taskmarket.utils.timeutils import utcnow


class AuditService:
    """Appends and reads task edit history entries."""

    @staticmethod
    def record(
        task: Task,
        *,
        user_id: str,
        user_name: str,
        action: str,
        now: Optional[datetime] = None,
    ) -> TaskEditHistory:
        """Append an entry to a loaded task; the caller commits."""
        entry = TaskEditHistory(
            user_id=user_id,
            user_name=user_name,
            action=action,
            timestamp=now or utcnow(),
        )
        task.edit_history.append(entry)
        return entry

    @staticmethod
    async def history(db: AsyncSession, task_id: UUID) -> List[TaskEditHistory]:
        """Edit history of a task, oldest first."""
        task = await task_store.require(db, task_id)
        return list(task.edit_history)


audit_service = AuditService()
