"""Project hierarchy schemas."""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from datetime import datetime

from taskmarket.schemas.task import TaskResponse


class ProjectBase(BaseModel):
    """Base project schema."""

    name: str
    description: Optional[str] = None
    category: Optional[str] = None


class ProjectCreate(ProjectBase):
    """Project creation schema."""

    owner_id: str


class ProjectUpdate(BaseModel):
    """Project update schema."""

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class SprintCreate(BaseModel):
    """Sprint creation schema."""

    project_id: UUID
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignCreate(BaseModel):
    """Campaign creation schema."""

    sprint_id: UUID
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignTree(BaseModel):
    """Campaign with its tasks."""

    id: UUID
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tasks: List[TaskResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SprintTree(BaseModel):
    """Sprint with its campaigns."""

    id: UUID
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    campaigns: List[CampaignTree] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ProjectTree(ProjectBase):
    """Nested Project -> Sprint -> Campaign -> Task view."""

    id: UUID
    owner_id: str
    created_at: datetime
    updated_at: datetime
    sprints: List[SprintTree] = Field(default_factory=list)

    class Config:
        from_attributes = True
