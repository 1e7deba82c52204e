"""Task model and lifecycle enumerations."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Enum as SQLEnum
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship
import uuid
from taskmarket.database import Base
from taskmarket.db.types import JSONBType, GUID
from taskmarket.utils.timeutils import utcnow


class TaskStatus(str, Enum):
    """Task status, covering workflow, recurring and library lanes."""

    DRAFT = "draft"
    PUBLISHED = "published"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    RECURRING_DAILY = "recurring_daily"
    RECURRING_WEEKLY = "recurring_weekly"
    RECURRING_MONTHLY = "recurring_monthly"

    CHECKLIST_LIBRARY = "checklist_library"
    CREDENTIALS_LIBRARY = "credentials_library"
    BRAND_BRIEF = "brand_brief"
    RESOURCE_LIBRARY = "resource_library"


class TaskPriority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RecurrenceType(str, Enum):
    """Recurrence interval of a recurring task."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskKind(str, Enum):
    """Variant of a task, derived from its status lane."""

    ORDINARY = "ordinary"
    RECURRING = "recurring"
    CHECKLIST = "checklist"
    CREDENTIALS = "credentials"
    BRAND_BRIEF = "brand_brief"
    RESOURCE_LIBRARY = "resource_library"


class AssignmentStatus(str, Enum):
    """Status of the embedded student assignment."""

    ACTIVE = "active"
    COMPLETED = "completed"
    REASSIGNED = "reassigned"


ORDINARY_STATUSES = frozenset(
    {
        TaskStatus.DRAFT,
        TaskStatus.PUBLISHED,
        TaskStatus.IN_PROGRESS,
        TaskStatus.REVIEW,
        TaskStatus.COMPLETED,
        TaskStatus.ARCHIVED,
    }
)

RECURRING_STATUSES = {
    TaskStatus.RECURRING_DAILY: RecurrenceType.DAILY,
    TaskStatus.RECURRING_WEEKLY: RecurrenceType.WEEKLY,
    TaskStatus.RECURRING_MONTHLY: RecurrenceType.MONTHLY,
}

LIBRARY_STATUSES = {
    TaskStatus.CHECKLIST_LIBRARY: TaskKind.CHECKLIST,
    TaskStatus.CREDENTIALS_LIBRARY: TaskKind.CREDENTIALS,
    TaskStatus.BRAND_BRIEF: TaskKind.BRAND_BRIEF,
    TaskStatus.RESOURCE_LIBRARY: TaskKind.RESOURCE_LIBRARY,
}


def recurring_status_for(recurrence: RecurrenceType) -> TaskStatus:
    """Map a recurrence interval to its status lane."""
    for status, value in RECURRING_STATUSES.items():
        if value == recurrence:
            return status
    raise ValueError(f"Unknown recurrence type {recurrence}")


def library_status_for(kind: TaskKind) -> TaskStatus:
    """Map a library item kind to its pseudo-status."""
    for status, value in LIBRARY_STATUSES.items():
        if value == kind:
            return status
    raise ValueError(f"{kind} is not a library item kind")


@dataclass
class TaskAssignment:
    """Read view of the assignment embedded in a task row."""

    student_id: str
    student_name: str
    student_email: str
    assigned_at: datetime
    status: AssignmentStatus


class Task(Base):
    """Marketplace task."""

    __tablename__ = "tasks"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    campaign_id = Column(GUID(), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.DRAFT, nullable=False, index=True)
    priority = Column(SQLEnum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    price = Column(Integer, nullable=True)
    due_date = Column(DateTime, nullable=True)
    video_url = Column(String(500), nullable=True)
    skills = Column(JSONBType(), nullable=True, default=list)
    estimated_hours = Column(Float, nullable=True)
    standard_operating_procedure = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)

    # Publication / completion
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Embedded assignment (at most one)
    assignee_id = Column(String(255), nullable=True, index=True)
    assignment_student_id = Column(String(255), nullable=True, index=True)
    assignment_student_name = Column(String(255), nullable=True)
    assignment_student_email = Column(String(255), nullable=True)
    assignment_assigned_at = Column(DateTime, nullable=True)
    assignment_status = Column(SQLEnum(AssignmentStatus), nullable=True, index=True)

    # Timeline settings
    auto_post_to_timeline = Column(Boolean, nullable=True)  # None means enabled
    details_posted_to_timeline = Column(Boolean, nullable=True)

    # Recurrence bookkeeping
    last_completed_at = Column(DateTime, nullable=True)
    next_due_date = Column(DateTime, nullable=True, index=True)
    is_recurring_completed = Column(Boolean, default=False, nullable=False)

    # Library item payload (checklist / credentials / brand brief / resources)
    library_payload = Column(JSONBType(), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Owned collections
    applications = relationship(
        "TaskApplication",
        cascade="all, delete-orphan",
        order_by="TaskApplication.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    timeline_messages = relationship(
        "TimelineMessage",
        cascade="all, delete-orphan",
        order_by="TimelineMessage.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    comments = relationship(
        "TaskComment",
        cascade="all, delete-orphan",
        order_by="TaskComment.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    edit_history = relationship(
        "TaskEditHistory",
        cascade="all, delete-orphan",
        order_by="TaskEditHistory.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    recurrence_history = relationship(
        "RecurrenceRecord",
        cascade="all, delete-orphan",
        order_by="RecurrenceRecord.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    reviews = relationship(
        "TaskReview",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def kind(self) -> TaskKind:
        if self.status in RECURRING_STATUSES:
            return TaskKind.RECURRING
        if self.status in LIBRARY_STATUSES:
            return LIBRARY_STATUSES[self.status]
        return TaskKind.ORDINARY

    @property
    def recurrence_type(self) -> Optional[RecurrenceType]:
        return RECURRING_STATUSES.get(self.status)

    @property
    def is_recurring(self) -> bool:
        return self.status in RECURRING_STATUSES

    @property
    def is_library_item(self) -> bool:
        return self.status in LIBRARY_STATUSES

    @property
    def auto_post_enabled(self) -> bool:
        return self.auto_post_to_timeline is not False

    @property
    def assignment(self) -> Optional[TaskAssignment]:
        if self.assignment_student_id is None:
            return None
        return TaskAssignment(
            student_id=self.assignment_student_id,
            student_name=self.assignment_student_name or "",
            student_email=self.assignment_student_email or "",
            assigned_at=self.assignment_assigned_at,
            status=self.assignment_status,
        )

    @property
    def has_active_assignment(self) -> bool:
        return self.assignment_status == AssignmentStatus.ACTIVE

    def assign(self, *, student_id: str, student_name: str, student_email: str, assigned_at: datetime) -> None:
        self.assignee_id = student_id
        self.assignment_student_id = student_id
        self.assignment_student_name = student_name
        self.assignment_student_email = student_email
        self.assignment_assigned_at = assigned_at
        self.assignment_status = AssignmentStatus.ACTIVE

    @property
    def employer_review(self):
        return next((r for r in self.reviews if r.reviewer_type == "employer"), None)

    @property
    def student_review(self):
        return next((r for r in self.reviews if r.reviewer_type == "student"), None)
