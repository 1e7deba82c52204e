"""Post-completion reviews between employer and student."""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskmarket.core.exceptions import InvariantViolationError, ValidationError
from taskmarket.crud.task import task as task_store
from taskmarket.localization.helpers import get_translation
from taskmarket.models.task import Task, TaskStatus
from taskmarket.models.task_activity import TaskReview, UserRole
from taskmarket.schemas.common import Actor
from taskmarket.schemas.review import ReviewPage, ReviewResponse
from taskmarket.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class ReviewService:
    """One review per task and reviewer side, only on completed tasks."""

    async def submit(
        self,
        db: AsyncSession,
        task_id: UUID,
        *,
        reviewer: Actor,
        recipient_id: str,
        recipient_name: str,
        rating: int,
        comment: str = "",
        now: Optional[datetime] = None,
    ) -> TaskReview:
        """Leave a review; ``reviewer.role`` decides which side it counts for."""
        if not 1 <= rating <= 5:
            raise ValidationError(get_translation("errors.rating_range"))
        now = now or utcnow()
        reviewer_type = UserRole(reviewer.role)

        def _submit(task: Task) -> TaskReview:
            if task.status != TaskStatus.COMPLETED:
                raise InvariantViolationError(get_translation("errors.review_requires_completion"))
            if any(r.reviewer_type == reviewer_type for r in task.reviews):
                raise InvariantViolationError(
                    get_translation("errors.review_exists", reviewer_type=reviewer_type.value)
                )
            review = TaskReview(
                task_title=task.title,
                reviewer_id=reviewer.id,
                reviewer_name=reviewer.name,
                reviewer_type=reviewer_type,
                recipient_id=recipient_id,
                recipient_name=recipient_name,
                rating=rating,
                comment=comment or "",
                created_at=now,
            )
            task.reviews.append(review)
            task.updated_at = now
            return review

        review = await task_store.mutate_task(db, task_id, _submit)
        logger.info(f"{reviewer_type.value} review ({rating}) left on task {task_id} by {reviewer.id}")
        return review

    @staticmethod
    async def has_submitted(db: AsyncSession, task_id: UUID, *, user_id: str, reviewer_type: UserRole) -> bool:
        """Whether the user already reviewed the task from that side."""
        result = await db.execute(
            select(func.count(TaskReview.id)).where(
                TaskReview.task_id == task_id,
                TaskReview.reviewer_id == user_id,
                TaskReview.reviewer_type == UserRole(reviewer_type),
            )
        )
        return result.scalar_one() > 0

    @staticmethod
    async def best_reviews(
        db: AsyncSession,
        reviewer_type: UserRole,
        *,
        limit: int = 6,
        page: int = 1,
    ) -> ReviewPage:
        """Highest rated reviews first, newest first within a rating."""
        reviewer_type = UserRole(reviewer_type)
        limit = max(1, limit)
        total_result = await db.execute(
            select(func.count(TaskReview.id)).where(TaskReview.reviewer_type == reviewer_type)
        )
        total = total_result.scalar_one()
        total_pages = max(1, math.ceil(total / limit))
        current_page = min(max(1, page), total_pages)

        result = await db.execute(
            select(TaskReview)
            .where(TaskReview.reviewer_type == reviewer_type)
            .order_by(TaskReview.rating.desc(), TaskReview.created_at.desc())
            .offset((current_page - 1) * limit)
            .limit(limit)
        )
        return ReviewPage(
            reviews=[ReviewResponse.model_validate(r) for r in result.scalars().all()],
            total=total,
            total_pages=total_pages,
            current_page=current_page,
        )


review_service = ReviewService()
