"""Marketplace listings and aggregate statistics."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.crud.task import task as task_store
from taskmarket.models.project import Campaign, Project, Sprint
from taskmarket.models.task import Task, TaskKind, TaskStatus, library_status_for
from taskmarket.models.task_activity import TaskApplication
from taskmarket.services.commission_service import commission_service

DEFAULT_CATEGORY = "General"


@dataclass
class CategoryCountDTO:
    """Number of published tasks in a category."""

    name: str
    count: int


@dataclass
class CompletedTaskDTO:
    """A student's completed task with its project context."""

    task: Task
    project_id: UUID
    project_name: str
    owner_id: str
    category: str
    earnings: int


@dataclass
class PlatformStatisticsDTO:
    """Platform-wide totals over published tasks."""

    total_employers: int
    total_students: int
    total_tasks: int
    completed_tasks: int
    average_payout: float
    total_payouts: int
    average_timeline_messages: float
    total_timeline_messages: int
    average_completion_time_hours: float
    task_success_rate: float
    active_projects: int


@dataclass
class AssignmentDebugDTO:
    """Assignment state of a task, for support tooling."""

    task_id: UUID
    title: str
    assignee_id: Optional[str]
    has_assignment: bool
    assignment_status: Optional[str]
    applications: List[Dict[str, Any]] = field(default_factory=list)


class MarketplaceService:
    """Read-only queries over published tasks and student history."""

    @staticmethod
    async def published_tasks(db: AsyncSession) -> List[Task]:
        return await task_store.get_published(db)

    @staticmethod
    async def featured_tasks(db: AsyncSession, limit: int = 6) -> List[Task]:
        """Most recently published tasks."""
        tasks = await task_store.get_published(db)
        return tasks[:limit]

    @staticmethod
    async def tasks_by_category(db: AsyncSession, category: str, limit: int = 4) -> List[Task]:
        tasks = await task_store.get_published(db)
        return [t for t in tasks if t.category == category][:limit]

    @staticmethod
    async def tasks_by_kind(db: AsyncSession, project_id: UUID, kind: TaskKind) -> List[Task]:
        """Library items of one kind, or all recurring or ordinary tasks, in a project."""
        kind = TaskKind(kind)
        if kind in (TaskKind.ORDINARY, TaskKind.RECURRING):
            tasks = await task_store.get_by_project(db, project_id=project_id)
            return [t for t in tasks if t.kind == kind]
        return await task_store.get_by_project(db, project_id=project_id, status=library_status_for(kind))

    @staticmethod
    async def popular_categories(db: AsyncSession, limit: int = 6) -> List[CategoryCountDTO]:
        """Categories with the most published tasks."""
        tasks = await task_store.get_published(db)
        counts = Counter(t.category for t in tasks if t.category)
        return [CategoryCountDTO(name=name, count=count) for name, count in counts.most_common(limit)]

    @staticmethod
    async def student_completed_tasks(db: AsyncSession, student_id: str) -> List[CompletedTaskDTO]:
        """Completed tasks of a student with project name, owner and net earnings."""
        tasks = await task_store.get_completed_for_student(db, student_id=student_id)
        if not tasks:
            return []
        campaign_ids = {t.campaign_id for t in tasks}
        result = await db.execute(
            select(Campaign.id, Project)
            .join(Sprint, Campaign.sprint_id == Sprint.id)
            .join(Project, Sprint.project_id == Project.id)
            .where(Campaign.id.in_(campaign_ids))
        )
        projects = {campaign_id: project for campaign_id, project in result.all()}

        completed = []
        for t in tasks:
            project = projects.get(t.campaign_id)
            if project is None:
                continue
            completed.append(
                CompletedTaskDTO(
                    task=t,
                    project_id=project.id,
                    project_name=project.name,
                    owner_id=project.owner_id,
                    category=t.category or project.category or DEFAULT_CATEGORY,
                    earnings=commission_service.net_earnings(t.price or 0),
                )
            )
        return completed

    async def student_total_earnings(self, db: AsyncSession, student_id: str) -> int:
        """Net earnings over the student's completed tasks."""
        return sum(item.earnings for item in await self.student_completed_tasks(db, student_id))

    async def student_task_categories(self, db: AsyncSession, student_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for item in await self.student_completed_tasks(db, student_id):
            counts[item.category] = counts.get(item.category, 0) + 1
        return counts

    async def student_employers(self, db: AsyncSession, student_id: str) -> List[str]:
        """Distinct employers the student completed work for, in first-seen order."""
        employers: List[str] = []
        for item in await self.student_completed_tasks(db, student_id):
            if item.owner_id not in employers:
                employers.append(item.owner_id)
        return employers

    @staticmethod
    async def platform_statistics(db: AsyncSession) -> PlatformStatisticsDTO:
        """Totals over published tasks.

        Employers are counted as distinct project owners, students as distinct
        applicants.
        """
        tasks = await task_store.get_published(db)
        total = len(tasks)
        completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
        total_payouts = sum(t.price or 0 for t in tasks)
        total_messages = sum(len(t.timeline_messages) for t in tasks)

        durations = [
            (t.completed_at - t.published_at).total_seconds() / 3600
            for t in completed
            if t.completed_at and t.published_at
        ]

        owners_result = await db.execute(select(Project.owner_id).distinct())
        students_result = await db.execute(select(TaskApplication.student_id).distinct())
        active_result = await db.execute(
            select(Sprint.project_id)
            .join(Campaign, Campaign.sprint_id == Sprint.id)
            .join(Task, Task.campaign_id == Campaign.id)
            .where(Task.is_published.is_(True))
            .distinct()
        )

        return PlatformStatisticsDTO(
            total_employers=len(owners_result.scalars().all()),
            total_students=len(students_result.scalars().all()),
            total_tasks=total,
            completed_tasks=len(completed),
            average_payout=total_payouts / total if total else 0.0,
            total_payouts=total_payouts,
            average_timeline_messages=total_messages / total if total else 0.0,
            total_timeline_messages=total_messages,
            average_completion_time_hours=sum(durations) / len(durations) if durations else 0.0,
            task_success_rate=len(completed) / total * 100 if total else 0.0,
            active_projects=len(active_result.scalars().all()),
        )

    @staticmethod
    async def debug_assignment(db: AsyncSession, task_id: UUID) -> AssignmentDebugDTO:
        task = await task_store.require(db, task_id)
        return AssignmentDebugDTO(
            task_id=task.id,
            title=task.title,
            assignee_id=task.assignee_id,
            has_assignment=task.assignment is not None,
            assignment_status=task.assignment_status.value if task.assignment_status else None,
            applications=[
                {
                    "id": a.id,
                    "student_id": a.student_id,
                    "student_name": a.student_name,
                    "status": a.status.value,
                }
                for a in task.applications
            ],
        )


marketplace_service = MarketplaceService()
