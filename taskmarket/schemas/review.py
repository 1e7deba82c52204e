"""Review schemas."""
from typing import List
from uuid import UUID
from pydantic import BaseModel
from datetime import datetime

from taskmarket.models.task_activity import UserRole


class ReviewResponse(BaseModel):
    """Review response schema."""

    id: UUID
    task_id: UUID
    task_title: str
    reviewer_id: str
    reviewer_name: str
    reviewer_type: UserRole
    recipient_id: str
    recipient_name: str
    rating: int
    comment: str
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewPage(BaseModel):
    """One page of reviews."""

    reviews: List[ReviewResponse]
    total: int
    total_pages: int
    current_page: int
