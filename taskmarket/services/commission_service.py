"""Tiered platform commission."""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence, Union

from taskmarket.config import settings
from taskmarket.core.exceptions import ValidationError
from taskmarket.schemas.commission import CommissionBreakdown, CommissionTier

Number = Union[int, float]


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tiers_from_settings(rows: Optional[Sequence[Sequence[Optional[float]]]] = None) -> List[CommissionTier]:
    """Build tiers from ``[min, max, percentage]`` rows (settings format)."""
    rows = settings.COMMISSION_TIERS if rows is None else rows
    tiers = []
    for row in rows:
        if len(row) != 3:
            raise ValidationError(f"Commission tier must have 3 values, got {list(row)}")
        min_amount, max_amount, percentage = row
        tiers.append(CommissionTier(min_amount=min_amount, max_amount=max_amount, percentage=percentage))
    return tiers


class CommissionService:
    """Maps a task price to the platform fee and the student's net earnings.

    Tiers must be sorted, non-overlapping, and the last one unbounded.
    Amounts below zero are treated as zero.
    """

    def __init__(self, tiers: Optional[Iterable[CommissionTier]] = None):
        self.tiers: List[CommissionTier] = list(tiers) if tiers is not None else tiers_from_settings()
        self._validate(self.tiers)

    @staticmethod
    def _validate(tiers: List[CommissionTier]) -> None:
        if not tiers:
            raise ValidationError("Commission tier table is empty")
        previous_max: Optional[float] = None
        for index, tier in enumerate(tiers):
            is_last = index == len(tiers) - 1
            if tier.min_amount < 0:
                raise ValidationError(f"Tier {index} has a negative minimum amount")
            if not 0 <= tier.percentage <= 100:
                raise ValidationError(f"Tier {index} percentage must be between 0 and 100")
            if tier.max_amount is None:
                if not is_last:
                    raise ValidationError(f"Only the last tier may be unbounded (tier {index})")
            elif tier.min_amount > tier.max_amount:
                raise ValidationError(f"Tier {index} minimum exceeds its maximum")
            if index > 0 and (previous_max is None or tier.min_amount <= previous_max):
                raise ValidationError(f"Tier {index} overlaps or is out of order")
            previous_max = tier.max_amount
        if tiers[-1].max_amount is not None:
            raise ValidationError("The last commission tier must be unbounded")

    @staticmethod
    def _clamp(amount: Optional[Number]) -> Number:
        if amount is None or amount < 0:
            return 0
        return amount

    def percentage_for(self, amount: Optional[Number]) -> float:
        """Percentage of the first tier containing ``amount``, else the last tier's."""
        amount = self._clamp(amount)
        for tier in self.tiers:
            if tier.contains(amount):
                return tier.percentage
        return self.tiers[-1].percentage

    def commission_on(self, amount: Optional[Number]) -> int:
        """Platform charge, rounded half up to whole units."""
        amount = self._clamp(amount)
        percentage = self.percentage_for(amount)
        return _round_half_up(Decimal(str(amount)) * Decimal(str(percentage)) / Decimal(100))

    def net_earnings(self, amount: Optional[Number]) -> Number:
        """What the student receives: ``amount - commission_on(amount)``.

        The amount itself is not rounded, so earnings plus commission always
        add back up to the price. Integer prices give integer earnings.
        """
        amount = self._clamp(amount)
        net = Decimal(str(amount)) - self.commission_on(amount)
        return int(net) if isinstance(amount, int) else float(net)

    def breakdown(self, amount: Optional[Number]) -> CommissionBreakdown:
        amount = self._clamp(amount)
        return CommissionBreakdown(
            amount=amount,
            percentage=self.percentage_for(amount),
            commission=self.commission_on(amount),
            earnings=self.net_earnings(amount),
        )


commission_service = CommissionService()
