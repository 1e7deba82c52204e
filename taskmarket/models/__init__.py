"""Model modules."""
from taskmarket.models.project import Project, Sprint, Campaign
from taskmarket.models.task import (
    AssignmentStatus,
    RecurrenceType,
    Task,
    TaskAssignment,
    TaskKind,
    TaskPriority,
    TaskStatus,
)
from taskmarket.models.task_activity import (
    ApplicationStatus,
    RecurrenceRecord,
    TaskApplication,
    TaskComment,
    TaskEditHistory,
    TaskReview,
    TimelineMessage,
    UserRole,
)

__all__ = [
    "Project",
    "Sprint",
    "Campaign",
    "AssignmentStatus",
    "RecurrenceType",
    "Task",
    "TaskAssignment",
    "TaskKind",
    "TaskPriority",
    "TaskStatus",
    "ApplicationStatus",
    "RecurrenceRecord",
    "TaskApplication",
    "TaskComment",
    "TaskEditHistory",
    "TaskReview",
    "TimelineMessage",
    "UserRole",
]
