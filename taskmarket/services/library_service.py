"""Library items: checklists, credentials, brand briefs and resource lists.

Library items are tasks in a fixed pseudo-status that carry a typed
payload instead of marketplace fields. They are never published.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.core.exceptions import InvariantViolationError, NotFoundError, ValidationError
from taskmarket.crud.project import campaign as crud_campaign
from taskmarket.crud.project import project as crud_project
from taskmarket.crud.project import sprint as crud_sprint
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.project import Campaign, Sprint
from taskmarket.models.task import Task, TaskKind, TaskPriority, library_status_for
from taskmarket.schemas.common import Actor
from taskmarket.schemas.library import (
    BrandBriefPayload,
    ChecklistPayload,
    CredentialsPayload,
    LibraryPayload,
    ResourceLibraryPayload,
)
from taskmarket.services.audit_service import audit_service
from taskmarket.services.timeline_service import timeline_service
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(days=30)

PAYLOAD_TYPES = {
    TaskKind.CHECKLIST: ChecklistPayload,
    TaskKind.CREDENTIALS: CredentialsPayload,
    TaskKind.BRAND_BRIEF: BrandBriefPayload,
    TaskKind.RESOURCE_LIBRARY: ResourceLibraryPayload,
}

payload_adapter = TypeAdapter(LibraryPayload)


def _kind_label(kind: TaskKind) -> str:
    return library_status_for(kind).value.replace("_", " ", 1)


def _check_kind(kind: TaskKind, payload: Optional[LibraryPayload]) -> LibraryPayload:
    if payload is None:
        return PAYLOAD_TYPES[kind]()
    if payload.kind != kind.value:
        raise ValidationError(
            get_translation("errors.library_kind_mismatch", kind=payload.kind, expected=kind.value)
        )
    return payload


class LibraryService:
    """Creates and edits library items."""

    @staticmethod
    async def _resolve_campaign(
        db: AsyncSession,
        project_id: UUID,
        sprint_id: Optional[UUID],
        campaign_id: Optional[UUID],
        now: datetime,
    ) -> Campaign:
        """Use the given campaign, else the project's first one, else create one."""
        sprints = await crud_sprint.get_by_project(db, project_id=project_id)

        if sprint_id is not None and campaign_id is not None:
            if any(str(s.id) == str(sprint_id) for s in sprints):
                campaign_obj = await crud_campaign.get(db, campaign_id)
                if campaign_obj is not None and str(campaign_obj.sprint_id) == str(sprint_id):
                    return campaign_obj

        sprint_obj = sprints[0] if sprints else None
        if sprint_obj is not None:
            campaigns = await crud_campaign.get_by_sprint(db, sprint_id=sprint_obj.id)
            if campaigns:
                return campaigns[0]
        else:
            sprint_obj = Sprint(
                project_id=project_id,
                name="Default Sprint",
                description="Automatically created sprint for library items",
                start_date=now,
                end_date=now + DEFAULT_WINDOW,
                created_at=now,
            )
            db.add(sprint_obj)
            await db.flush()

        campaign_obj = Campaign(
            sprint_id=sprint_obj.id,
            name="Library Items",
            description="Automatically created campaign for library items",
            start_date=now,
            end_date=now + DEFAULT_WINDOW,
            created_at=now,
        )
        db.add(campaign_obj)
        await db.flush()
        logger.info(f"Created default library campaign {campaign_obj.id} in project {project_id}")
        return campaign_obj

    async def create(
        self,
        db: AsyncSession,
        project_id: UUID,
        *,
        kind: TaskKind,
        title: str,
        actor: Actor,
        description: Optional[str] = None,
        payload: Optional[LibraryPayload] = None,
        sprint_id: Optional[UUID] = None,
        campaign_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Task:
        """Create a library item inside the project."""
        kind = TaskKind(kind)
        if kind not in PAYLOAD_TYPES:
            raise ValidationError(get_translation("errors.invalid_library_kind", kind=kind.value))
        if not title or not title.strip():
            raise ValidationError(get_translation("errors.title_required"))
        payload = _check_kind(kind, payload)
        now = now or utcnow()

        if await crud_project.get(db, project_id) is None:
            raise NotFoundError(get_translation("errors.project_not_found", project_id=project_id))
        campaign_obj = await self._resolve_campaign(db, project_id, sprint_id, campaign_id, now)

        label = _kind_label(kind)
        db_obj = Task(
            campaign_id=campaign_obj.id,
            title=title.strip(),
            description=description,
            status=library_status_for(kind),
            priority=TaskPriority.MEDIUM,
            category=getattr(payload, "category", None),
            created_by=actor.id,
            is_published=False,
            library_payload=payload.model_dump(mode="json"),
            created_at=now,
            updated_at=now,
        )
        audit_service.record(
            db_obj,
            user_id=actor.id,
            user_name=actor.name,
            action=get_translation("audit.created_library", kind=label),
            now=now,
        )
        timeline_service.post_system(
            db_obj,
            get_translation("timeline.library_created", kind=label, title=db_obj.title),
            author_id=actor.id,
            author_name=actor.name,
            now=now,
        )
        db_obj = await task_store.add(db, db_obj)
        logger.info(f"Library item {db_obj.id} ({kind.value}) created in project {project_id}")
        return db_obj

    async def update_payload(
        self,
        db: AsyncSession,
        task_id: UUID,
        payload: LibraryPayload,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Task:
        """Replace the payload with one of the same kind."""
        now = now or utcnow()

        def _update(task: Task) -> Task:
            if not task.is_library_item:
                raise InvariantViolationError(get_translation("errors.not_library_item", task_id=task.id))
            checked = _check_kind(task.kind, payload)
            task.library_payload = checked.model_dump(mode="json")
            if hasattr(checked, "category"):
                task.category = checked.category
            audit_service.record(
                task,
                user_id=actor.id,
                user_name=actor.name,
                action=get_translation("audit.library_updated", kind=_kind_label(task.kind)),
                now=now,
            )
            task.updated_at = now
            return task

        return await task_store.mutate_task(db, task_id, _update)

    @staticmethod
    def payload_of(task: Task) -> LibraryPayload:
        """Typed payload of a library item."""
        if not task.is_library_item:
            raise InvariantViolationError(get_translation("errors.not_library_item", task_id=task.id))
        data = dict(task.library_payload or {})
        data.setdefault("kind", task.kind.value)
        return payload_adapter.validate_python(data)

    @staticmethod
    async def list_items(db: AsyncSession, project_id: UUID, kind: TaskKind) -> List[Task]:
        """Library items of one kind in a project."""
        return await task_store.get_by_project(db, project_id=project_id, status=library_status_for(TaskKind(kind)))


library_service = LibraryService()
