"""Project, sprint and campaign models.

The hierarchy is stored as independent tables; children keep a parent id
and parents hold no owning collections.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
import uuid
from taskmarket.database import Base
from taskmarket.db.types import GUID
from taskmarket.utils.timeutils import utcnow


class Project(Base):
    """Employer-owned project."""

    __tablename__ = "projects"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    owner_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Sprint(Base):
    """Time-boxed sprint inside a project."""

    __tablename__ = "sprints"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(GUID(), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Campaign(Base):
    """Campaign grouping tasks inside a sprint."""

    __tablename__ = "campaigns"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    sprint_id = Column(GUID(), ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)
