"""Task store: id-keyed task table with atomic per-task mutation."""
import inspect
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, TypeVar, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from taskmarket.config import settings
from taskmarket.core.exceptions import InvariantViolationError, NotFoundError
from taskmarket.core.metrics import mutation_conflicts_total
from taskmarket.crud.base import CRUDBase
from taskmarket.crud.project import campaign as crud_campaign
from taskmarket.crud.project import project as crud_project
from taskmarket.crud.project import sprint as crud_sprint
from taskmarket.localization.helpers import get_translation
from taskmarket.models.project import Campaign, Sprint
from taskmarket.models.task import (
    AssignmentStatus,
    LIBRARY_STATUSES,
    RECURRING_STATUSES,
    Task,
    TaskStatus,
)
from taskmarket.schemas.project import CampaignTree, ProjectTree, SprintTree
from taskmarket.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from taskmarket.utils.locks import KeyedLock, task_locks

logger = logging.getLogger(__name__)

T = TypeVar("T")
Mutation = Callable[[Task], Union[T, Awaitable[T]]]


class TaskStore(CRUDBase[Task, TaskCreate, TaskUpdate]):
    """Tasks keyed by id with campaign back references.

    Every change to an existing task goes through ``mutate_task``, which
    serializes writers on the same task id inside the process and relies on
    the ``version`` column to detect writers in other processes.
    """

    def __init__(self, model=Task, locks: Optional[KeyedLock] = None):
        super().__init__(model)
        self.locks = locks or task_locks

    async def get(self, db: AsyncSession, id: UUID) -> Optional[Task]:
        """Load a task, overwriting any stale copy held by the session."""
        result = await db.execute(
            select(Task).where(Task.id == id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require(self, db: AsyncSession, task_id: UUID) -> Task:
        """Load a task or raise NotFoundError."""
        task = await self.get(db, task_id)
        if task is None:
            raise NotFoundError(get_translation("errors.task_not_found", task_id=task_id))
        return task

    async def add(self, db: AsyncSession, task: Task) -> Task:
        """Insert a fully built task."""
        db.add(task)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        # Reload so every owned collection is populated
        return await self.get(db, task.id)

    async def mutate_task(self, db: AsyncSession, task_id: UUID, fn: Mutation) -> Any:
        """Apply ``fn`` to the task and commit atomically.

        ``fn`` receives the freshly loaded task and may be sync or async. On
        any exception the transaction is rolled back and the stored task is
        left untouched. A version conflict re-reads the task and reapplies
        ``fn``.
        """
        async with self.locks.acquire(str(task_id)):
            return await self._apply(db, task_id, fn)

    @retry(
        retry=retry_if_exception_type(StaleDataError),
        stop=stop_after_attempt(settings.MUTATION_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    async def _apply(self, db: AsyncSession, task_id: UUID, fn: Mutation) -> Any:
        task = await self.require(db, task_id)
        try:
            result = fn(task)
            if inspect.isawaitable(result):
                result = await result
            await db.commit()
        except StaleDataError:
            await db.rollback()
            mutation_conflicts_total.inc()
            logger.warning(f"Version conflict while mutating task {task_id}, retrying")
            raise
        except IntegrityError as exc:
            await db.rollback()
            logger.warning(f"Integrity error while mutating task {task_id}: {exc.orig}")
            raise InvariantViolationError() from exc
        except Exception:
            await db.rollback()
            raise
        return result

    async def delete_task(self, db: AsyncSession, task_id: UUID) -> Task:
        """Delete a task together with its owned collections."""
        async with self.locks.acquire(str(task_id)):
            task = await self.require(db, task_id)
            await db.delete(task)
            await db.commit()
            return task

    async def get_by_campaign(self, db: AsyncSession, *, campaign_id: UUID) -> List[Task]:
        """Get tasks of a campaign in creation order."""
        result = await db.execute(
            select(Task).where(Task.campaign_id == campaign_id).order_by(Task.created_at)
        )
        return list(result.scalars().all())

    async def get_by_project(
        self,
        db: AsyncSession,
        *,
        project_id: UUID,
        status: Optional[TaskStatus] = None,
    ) -> List[Task]:
        """Get tasks of a project, optionally filtered by status."""
        query = (
            select(Task)
            .join(Campaign, Task.campaign_id == Campaign.id)
            .join(Sprint, Campaign.sprint_id == Sprint.id)
            .where(Sprint.project_id == project_id)
        )
        if status is not None:
            query = query.where(Task.status == status)
        result = await db.execute(query.order_by(Task.created_at))
        return list(result.scalars().all())

    async def get_published(self, db: AsyncSession) -> List[Task]:
        """Get published marketplace tasks, newest first."""
        result = await db.execute(
            select(Task)
            .where(
                Task.is_published.is_(True),
                Task.status.not_in(list(LIBRARY_STATUSES)),
            )
            .order_by(Task.published_at.desc(), Task.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_due_recurring_ids(self, db: AsyncSession, *, now: datetime) -> List[UUID]:
        """Ids of completed recurring tasks whose next due date has passed."""
        result = await db.execute(
            select(Task.id).where(
                Task.status.in_(list(RECURRING_STATUSES)),
                Task.is_recurring_completed.is_(True),
                Task.next_due_date.is_not(None),
                Task.next_due_date <= now,
            )
        )
        return list(result.scalars().all())

    async def get_active_for_student(self, db: AsyncSession, *, student_id: str) -> List[Task]:
        """Tasks the student actively holds that are not completed yet."""
        result = await db.execute(
            select(Task).where(
                Task.assignment_student_id == student_id,
                Task.assignment_status == AssignmentStatus.ACTIVE,
                Task.status != TaskStatus.COMPLETED,
            )
        )
        return list(result.scalars().all())

    async def get_completed_for_student(self, db: AsyncSession, *, student_id: str) -> List[Task]:
        """Completed tasks whose assignment belongs to the student."""
        result = await db.execute(
            select(Task)
            .where(
                Task.assignment_student_id == student_id,
                Task.status == TaskStatus.COMPLETED,
            )
            .order_by(Task.completed_at)
        )
        return list(result.scalars().all())

    async def project_tree(self, db: AsyncSession, project_id: UUID) -> ProjectTree:
        """Assemble the nested Project -> Sprint -> Campaign -> Task view."""
        project = await crud_project.get(db, project_id)
        if project is None:
            raise NotFoundError(get_translation("errors.project_not_found", project_id=project_id))

        sprints = []
        for sprint in await crud_sprint.get_by_project(db, project_id=project.id):
            campaigns = []
            for campaign in await crud_campaign.get_by_sprint(db, sprint_id=sprint.id):
                tasks = await self.get_by_campaign(db, campaign_id=campaign.id)
                campaigns.append(
                    CampaignTree(
                        id=campaign.id,
                        name=campaign.name,
                        description=campaign.description,
                        start_date=campaign.start_date,
                        end_date=campaign.end_date,
                        tasks=[TaskResponse.model_validate(t) for t in tasks],
                    )
                )
            sprints.append(
                SprintTree(
                    id=sprint.id,
                    name=sprint.name,
                    description=sprint.description,
                    start_date=sprint.start_date,
                    end_date=sprint.end_date,
                    campaigns=campaigns,
                )
            )

        return ProjectTree(
            id=project.id,
            name=project.name,
            description=project.description,
            category=project.category,
            owner_id=project.owner_id,
            created_at=project.created_at,
            updated_at=project.updated_at,
            sprints=sprints,
        )


task = TaskStore(Task)
