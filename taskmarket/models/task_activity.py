"""Collections owned by a task: applications, timeline, comments, history, reviews."""
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Enum as SQLEnum
import uuid
from taskmarket.database import Base
from taskmarket.db.types import GUID
from taskmarket.utils.timeutils import utcnow


class UserRole(str, Enum):
    """Marketplace participant role."""

    EMPLOYER = "employer"
    STUDENT = "student"


class ApplicationStatus(str, Enum):
    """Student application status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DELETED_MESSAGE_PLACEHOLDER = "This message was deleted"
SYSTEM_USER_ID = "system"
SYSTEM_USER_NAME = "System"


class TaskApplication(Base):
    """A student's request to be assigned a task."""

    __tablename__ = "task_applications"
    __table_args__ = (UniqueConstraint("task_id", "student_id", name="uq_task_application_student"),)

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    student_id = Column(String(255), nullable=False, index=True)
    student_name = Column(String(255), nullable=False)
    student_email = Column(String(255), nullable=False)
    note = Column(Text, nullable=False, default="")
    status = Column(SQLEnum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class TimelineMessage(Base):
    """Append-only, editable, soft-deletable communication entry."""

    __tablename__ = "timeline_messages"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    user_id = Column(String(255), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_type = Column(SQLEnum(UserRole), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    is_system_message = Column(Boolean, default=False, nullable=False)
    related_to_message_id = Column(GUID(), nullable=True)
    edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


class TaskComment(Base):
    """Free-form comment on a task."""

    __tablename__ = "task_comments"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    user_id = Column(String(255), nullable=False)
    user_name = Column(String(255), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class TaskEditHistory(Base):
    """Audit trail entry for a task change."""

    __tablename__ = "task_edit_history"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    user_id = Column(String(255), nullable=False)
    user_name = Column(String(255), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    action = Column(String(500), nullable=True)


class RecurrenceRecord(Base):
    """One completion of a recurring task."""

    __tablename__ = "recurrence_history"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime, nullable=False)
    completed_by = Column(String(255), nullable=False)
    next_due_date = Column(DateTime, nullable=False)
    # Bookkeeping before this completion, restored when it is undone
    previous_last_completed_at = Column(DateTime, nullable=True)
    previous_next_due_date = Column(DateTime, nullable=True)


class TaskReview(Base):
    """Rating left by the employer or the student after completion."""

    __tablename__ = "task_reviews"
    __table_args__ = (UniqueConstraint("task_id", "reviewer_type", name="uq_task_review_reviewer_type"),)

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    task_title = Column(String(255), nullable=False)
    reviewer_id = Column(String(255), nullable=False, index=True)
    reviewer_name = Column(String(255), nullable=False)
    reviewer_type = Column(SQLEnum(UserRole), nullable=False, index=True)
    recipient_id = Column(String(255), nullable=False, index=True)
    recipient_name = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow, nullable=False)
