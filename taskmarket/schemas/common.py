"""Common schemas."""
from typing import Optional
from pydantic import BaseModel

from taskmarket.models.task_activity import UserRole


class Actor(BaseModel):
    """Identity of the user performing an operation."""

    id: str
    name: str
    role: UserRole = UserRole.EMPLOYER
    email: Optional[str] = None
