"""Task schemas."""
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from datetime import datetime

from taskmarket.models.task import AssignmentStatus, RecurrenceType, TaskKind, TaskPriority, TaskStatus
from taskmarket.models.task_activity import ApplicationStatus, UserRole


class TaskBase(BaseModel):
    """Base task schema."""

    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = None
    price: Optional[int] = None
    due_date: Optional[datetime] = None
    video_url: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    estimated_hours: Optional[float] = None
    standard_operating_procedure: Optional[str] = None


class TaskCreate(TaskBase):
    """Task creation schema.

    ``recurrence`` puts the task in the matching ``recurring_*`` lane and
    takes precedence over ``status``.
    """

    status: TaskStatus = TaskStatus.PUBLISHED
    recurrence: Optional[RecurrenceType] = None
    auto_post_to_timeline: Optional[bool] = None


class TaskUpdate(BaseModel):
    """Task update schema."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = None
    price: Optional[int] = None
    due_date: Optional[datetime] = None
    video_url: Optional[str] = None
    skills: Optional[List[str]] = None
    estimated_hours: Optional[float] = None
    standard_operating_procedure: Optional[str] = None
    auto_post_to_timeline: Optional[bool] = None


class TaskAssignmentResponse(BaseModel):
    """Embedded assignment."""

    student_id: str
    student_name: str
    student_email: str
    assigned_at: datetime
    status: AssignmentStatus

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    """Task application response schema."""

    id: UUID
    student_id: str
    student_name: str
    student_email: str
    note: str
    status: ApplicationStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TimelineMessageResponse(BaseModel):
    """Timeline message response schema."""

    id: UUID
    user_id: str
    user_name: str
    user_type: UserRole
    content: str
    timestamp: datetime
    is_system_message: bool
    related_to_message_id: Optional[UUID] = None
    edited: bool
    edited_at: Optional[datetime] = None
    is_deleted: bool
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskResponse(TaskBase):
    """Task response schema."""

    id: UUID
    campaign_id: UUID
    status: TaskStatus
    kind: TaskKind
    skills: Optional[List[str]] = None
    is_published: bool
    published_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    assignee_id: Optional[str] = None
    assignment: Optional[TaskAssignmentResponse] = None
    auto_post_to_timeline: Optional[bool] = None
    details_posted_to_timeline: Optional[bool] = None
    last_completed_at: Optional[datetime] = None
    next_due_date: Optional[datetime] = None
    is_recurring_completed: bool = False
    library_payload: Optional[dict] = None
    created_by: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime
    applications: List[ApplicationResponse] = Field(default_factory=list)
    timeline_messages: List[TimelineMessageResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True
