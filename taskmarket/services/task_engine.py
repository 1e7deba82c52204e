"""Function-call surface of the workflow engine.

Every mutating call runs in its own session and returns an
``OperationResult`` instead of raising, so callers only have to check
truthiness.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union
from uuid import UUID

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskmarket.core.exceptions import EngineError, ValidationError
from taskmarket.core.metrics import engine_errors_total, engine_operations_total
from taskmarket.crud.task import task as task_store
from taskmarket.database import AsyncSessionLocal
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import Task, TaskKind, TaskPriority, TaskStatus
from taskmarket.models.task_activity import ApplicationStatus
from taskmarket.schemas.common import Actor
from taskmarket.schemas.library import LibraryPayload
from taskmarket.schemas.project import ProjectTree
from taskmarket.schemas.task import TaskCreate, TaskUpdate
from taskmarket.services.application_service import application_service
from taskmarket.services.assignment_service import Eligibility, assignment_service
from taskmarket.services.comment_service import comment_service
from taskmarket.services.commission_service import CommissionService, commission_service
from taskmarket.services.library_service import library_service
from taskmarket.services.recurrence_service import SweepReport, recurrence_service
from taskmarket.services.review_service import review_service
from taskmarket.services.task_lifecycle_service import task_lifecycle_service
from taskmarket.services.timeline_service import timeline_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse(schema: type, data: Any) -> Any:
    if isinstance(data, schema):
        return data
    try:
        return schema(**data)
    except pydantic.ValidationError as exc:
        raise ValidationError(str(exc)) from exc


@dataclass
class OperationResult(Generic[T]):
    """Outcome of an engine call; truthy when it succeeded."""

    ok: bool
    value: Optional[T] = None
    error: Optional[EngineError] = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None


class TaskEngine:
    """Facade over the task services."""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        commission: Optional[CommissionService] = None,
    ):
        self._session_factory = session_factory
        self.commission = commission or commission_service

    async def _run(self, operation: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> OperationResult[T]:
        async with self._session_factory() as db:
            try:
                value = await fn(db)
            except EngineError as exc:
                logger.warning(f"{operation} rejected ({exc.code}): {exc.detail}")
                engine_operations_total.labels(operation=operation, outcome="rejected").inc()
                engine_errors_total.labels(operation=operation, error_type=exc.code).inc()
                return OperationResult(ok=False, error=exc)
            except Exception as exc:
                logger.error(f"{operation} failed unexpectedly: {exc}", exc_info=True)
                engine_operations_total.labels(operation=operation, outcome="error").inc()
                engine_errors_total.labels(operation=operation, error_type=type(exc).__name__).inc()
                return OperationResult(ok=False, error=EngineError())
        engine_operations_total.labels(operation=operation, outcome="success").inc()
        return OperationResult(ok=True, value=value)

    # Reads

    async def get_task(self, task_id: UUID) -> OperationResult[Task]:
        return await self._run("get_task", lambda db: task_store.require(db, task_id))

    async def project_tree(self, project_id: UUID) -> OperationResult[ProjectTree]:
        return await self._run("project_tree", lambda db: task_store.project_tree(db, project_id))

    # Lifecycle

    async def create_task(
        self,
        campaign_id: UUID,
        data: Union[TaskCreate, dict],
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> OperationResult[UUID]:
        """Create a task; the result value is the new task id."""

        async def _create(db: AsyncSession) -> UUID:
            obj_in = _parse(TaskCreate, data)
            created = await task_lifecycle_service.create(db, campaign_id, obj_in, actor, now=now)
            return created.id

        return await self._run("create_task", _create)

    async def update_task(
        self,
        task_id: UUID,
        fields: Union[TaskUpdate, dict],
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> OperationResult[Task]:
        async def _update(db: AsyncSession) -> Task:
            obj_in = _parse(TaskUpdate, fields)
            return await task_lifecycle_service.update(db, task_id, obj_in, actor, now=now)

        return await self._run("update_task", _update)

    async def update_status(self, task_id: UUID, status: TaskStatus, actor: Actor) -> OperationResult[Task]:
        return await self._run(
            "update_status", lambda db: task_lifecycle_service.update_status(db, task_id, status, actor)
        )

    async def update_priority(self, task_id: UUID, priority: TaskPriority, actor: Actor) -> OperationResult[Task]:
        return await self._run(
            "update_priority", lambda db: task_lifecycle_service.update_priority(db, task_id, priority, actor)
        )

    async def toggle_publish(self, task_id: UUID, actor: Actor) -> OperationResult[Task]:
        return await self._run("toggle_publish", lambda db: task_lifecycle_service.toggle_publish(db, task_id, actor))

    async def toggle_auto_post_to_timeline(self, task_id: UUID, actor: Actor) -> OperationResult[Task]:
        return await self._run(
            "toggle_auto_post_to_timeline",
            lambda db: task_lifecycle_service.toggle_auto_post_to_timeline(db, task_id, actor),
        )

    async def mark_completed(self, task_id: UUID, actor: Actor, now: Optional[datetime] = None) -> OperationResult[Task]:
        return await self._run(
            "mark_completed", lambda db: task_lifecycle_service.mark_completed(db, task_id, actor, now=now)
        )

    async def delete_task(self, task_id: UUID) -> OperationResult[Task]:
        return await self._run("delete_task", lambda db: task_lifecycle_service.delete(db, task_id))

    # Applications and assignment

    async def reassign_task(self, task_id: UUID, reason: str, actor: Actor) -> OperationResult[Task]:
        return await self._run(
            "reassign_task",
            lambda db: assignment_service.reassign(
                db, task_id, reason=reason, actor_id=actor.id, actor_name=actor.name
            ),
        )

    async def submit_application(self, task_id: UUID, student: Actor, note: str = "") -> OperationResult[Any]:
        return await self._run(
            "submit_application",
            lambda db: application_service.submit(
                db,
                task_id,
                student_id=student.id,
                student_name=student.name,
                student_email=student.email or "",
                note=note,
            ),
        )

    async def update_application_status(
        self,
        task_id: UUID,
        application_id: UUID,
        status: ApplicationStatus,
        actor: Optional[Actor] = None,
    ) -> OperationResult[Any]:
        return await self._run(
            "update_application_status",
            lambda db: application_service.update_status(
                db,
                task_id,
                application_id,
                new_status=status,
                actor_id=actor.id if actor else None,
                actor_name=actor.name if actor else None,
            ),
        )

    async def get_student_application(self, task_id: UUID, student_id: str) -> OperationResult[Any]:
        return await self._run(
            "get_student_application",
            lambda db: application_service.get_student_application(db, task_id, student_id),
        )

    async def can_student_apply(self, student_id: str) -> Eligibility:
        """Capacity check; a failed lookup denies with a generic reason."""
        result = await self._run("can_student_apply", lambda db: assignment_service.can_apply(db, student_id))
        if result.ok:
            return result.value
        return Eligibility(can_apply=False, reason=get_translation("errors.eligibility_check_failed"))

    # Timeline

    async def add_timeline_message(
        self,
        task_id: UUID,
        actor: Actor,
        content: str,
        is_system_message: bool = False,
        related_to_message_id: Optional[UUID] = None,
    ) -> OperationResult[Any]:
        return await self._run(
            "add_timeline_message",
            lambda db: timeline_service.append(
                db,
                task_id,
                author_id=actor.id,
                author_name=actor.name,
                role=actor.role,
                content=content,
                is_system_message=is_system_message,
                related_to_message_id=related_to_message_id,
            ),
        )

    async def edit_timeline_message(
        self,
        task_id: UUID,
        message_id: UUID,
        new_content: str,
        actor: Actor,
    ) -> OperationResult[Any]:
        return await self._run(
            "edit_timeline_message",
            lambda db: timeline_service.edit(
                db,
                task_id,
                message_id,
                new_content=new_content,
                editor_id=actor.id,
                editor_role=actor.role,
            ),
        )

    async def delete_timeline_message(self, task_id: UUID, message_id: UUID, actor: Actor) -> OperationResult[Any]:
        return await self._run(
            "delete_timeline_message",
            lambda db: timeline_service.delete(db, task_id, message_id, actor_id=actor.id, actor_role=actor.role),
        )

    async def post_task_details(self, task_id: UUID) -> OperationResult[Any]:
        return await self._run("post_task_details", lambda db: timeline_service.post_task_details(db, task_id))

    # Recurrence

    async def toggle_recurring_completion(
        self,
        task_id: UUID,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> OperationResult[Task]:
        return await self._run(
            "toggle_recurring_completion",
            lambda db: recurrence_service.toggle_completion(
                db, task_id, user_id=actor.id, user_name=actor.name, now=now
            ),
        )

    async def sweep_due_recurring_tasks(self, now: Optional[datetime] = None) -> SweepReport:
        result = await self._run("sweep_due_recurring_tasks", lambda db: recurrence_service.sweep_due_tasks(db, now))
        return result.value if result.ok else SweepReport()

    # Commission

    def commission_percentage(self, amount: Union[int, float]) -> float:
        return self.commission.percentage_for(amount)

    def commission_on(self, amount: Union[int, float]) -> int:
        return self.commission.commission_on(amount)

    def student_earnings(self, amount: Union[int, float]) -> Union[int, float]:
        return self.commission.net_earnings(amount)

    # Reviews, comments, library items

    async def submit_review(
        self,
        task_id: UUID,
        reviewer: Actor,
        recipient_id: str,
        recipient_name: str,
        rating: int,
        comment: str = "",
    ) -> OperationResult[Any]:
        return await self._run(
            "submit_review",
            lambda db: review_service.submit(
                db,
                task_id,
                reviewer=reviewer,
                recipient_id=recipient_id,
                recipient_name=recipient_name,
                rating=rating,
                comment=comment,
            ),
        )

    async def add_comment(self, task_id: UUID, actor: Actor, text: str) -> OperationResult[Any]:
        return await self._run(
            "add_comment",
            lambda db: comment_service.add(db, task_id, user_id=actor.id, user_name=actor.name, text=text),
        )

    async def create_library_item(
        self,
        project_id: UUID,
        kind: TaskKind,
        title: str,
        actor: Actor,
        description: Optional[str] = None,
        payload: Optional[LibraryPayload] = None,
        sprint_id: Optional[UUID] = None,
        campaign_id: Optional[UUID] = None,
    ) -> OperationResult[UUID]:
        """Create a library item; the result value is the new task id."""

        async def _create(db: AsyncSession) -> UUID:
            created = await library_service.create(
                db,
                project_id,
                kind=kind,
                title=title,
                actor=actor,
                description=description,
                payload=payload,
                sprint_id=sprint_id,
                campaign_id=campaign_id,
            )
            return created.id

        return await self._run("create_library_item", _create)
