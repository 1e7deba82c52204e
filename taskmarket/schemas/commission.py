"""Commission schemas."""
from typing import Optional
from pydantic import BaseModel


class CommissionTier(BaseModel):
    """Amount bracket mapped to a platform fee percentage.

    ``max_amount`` of None marks the unbounded top tier.
    """

    min_amount: float
    max_amount: Optional[float] = None
    percentage: float

    def contains(self, amount: float) -> bool:
        if amount < self.min_amount:
            return False
        return self.max_amount is None or amount <= self.max_amount


class CommissionBreakdown(BaseModel):
    """Split of a task price between platform and student."""

    amount: float
    percentage: float
    commission: int
    earnings: float
