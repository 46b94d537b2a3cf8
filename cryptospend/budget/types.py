"""
Budget usage and alert types.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class BudgetUsage:
    """Spend-to-date summary for a budget period."""

    used: Decimal
    total: Decimal
    percentage: int  # clamped to 100 for display
    remaining: Decimal

    @classmethod
    def empty(cls) -> "BudgetUsage":
        """Usage reported when the user has no budget."""
        return cls(used=Decimal(0), total=Decimal(0), percentage=0, remaining=Decimal(0))

    @property
    def exceeded(self) -> bool:
        """Unclamped overage check."""
        return self.used > self.total

    @property
    def overage(self) -> Decimal:
        """Amount spent beyond the cap."""
        return max(self.used - self.total, Decimal(0))


@dataclass
class BudgetAlert:
    """Budget-exceeded event handed to delivery channels."""

    user_id: int
    message: str
    used: Decimal
    total: Decimal
    currency: str
    triggered_at: datetime
    budget_id: Optional[int] = None

    @property
    def overage(self) -> Decimal:
        return max(self.used - self.total, Decimal(0))
