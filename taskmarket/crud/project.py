"""Project, sprint and campaign CRUD operations."""
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from taskmarket.crud.base import CRUDBase
from taskmarket.models.project import Campaign, Project, Sprint
from taskmarket.schemas.project import CampaignCreate, ProjectCreate, ProjectUpdate, SprintCreate


class CRUDProject(CRUDBase[Project, ProjectCreate, ProjectUpdate]):
    """CRUD operations for Project."""

    async def get_by_owner(self, db: AsyncSession, *, owner_id: str) -> List[Project]:
        """Get projects owned by an employer."""
        result = await db.execute(
            select(Project).where(Project.owner_id == owner_id).order_by(Project.created_at)
        )
        return list(result.scalars().all())


class CRUDSprint(CRUDBase[Sprint, SprintCreate, dict]):
    """CRUD operations for Sprint."""

    async def get_by_project(self, db: AsyncSession, *, project_id: UUID) -> List[Sprint]:
        """Get sprints of a project in creation order."""
        result = await db.execute(
            select(Sprint).where(Sprint.project_id == project_id).order_by(Sprint.created_at, Sprint.start_date)
        )
        return list(result.scalars().all())


class CRUDCampaign(CRUDBase[Campaign, CampaignCreate, dict]):
    """CRUD operations for Campaign."""

    async def get_by_sprint(self, db: AsyncSession, *, sprint_id: UUID) -> List[Campaign]:
        """Get campaigns of a sprint in creation order."""
        result = await db.execute(
            select(Campaign).where(Campaign.sprint_id == sprint_id).order_by(Campaign.created_at, Campaign.start_date)
        )
        return list(result.scalars().all())

    async def get_project_id(self, db: AsyncSession, *, campaign_id: UUID) -> Optional[UUID]:
        """Resolve the project a campaign belongs to."""
        result = await db.execute(
            select(Sprint.project_id)
            .join(Campaign, Campaign.sprint_id == Sprint.id)
            .where(Campaign.id == campaign_id)
        )
        return result.scalar_one_or_none()


project = CRUDProject(Project)
sprint = CRUDSprint(Sprint)
campaign = CRUDCampaign(Campaign)
