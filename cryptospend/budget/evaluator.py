"""
Budget evaluation against stored transactions.
"""

import logging
import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from cryptospend.database.base import Storage
from cryptospend.database.models import (
    Budget,
    Transaction,
    TransactionType,
    ensure_utc,
    utcnow,
)
from .types import BudgetUsage

logger = logging.getLogger(__name__)


def _to_decimal(value: str) -> Decimal:
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        logger.warning(f"Ignoring unparseable amount {value!r}")
        return Decimal(0)
    return number if number.is_finite() else Decimal(0)


def in_period(budget: Budget, tx: Transaction) -> bool:
    """Check if a transaction falls inside the budget period (inclusive)."""
    timestamp = ensure_utc(tx.timestamp)
    return ensure_utc(budget.period_start) <= timestamp <= ensure_utc(budget.period_end)


def calculate_usage(
    budget: Optional[Budget], transactions: Iterable[Transaction]
) -> BudgetUsage:
    """
    Calculate spend-to-date for a budget.

    Only sent transactions inside the period count.

    Args:
        budget: Current budget, or None
        transactions: User's transactions

    Returns:
        BudgetUsage; zeroed when there is no budget
    """
    if budget is None:
        return BudgetUsage.empty()

    total = _to_decimal(budget.amount)
    used = sum(
        (
            _to_decimal(tx.amount)
            for tx in transactions
            if tx.type == TransactionType.SENT and in_period(budget, tx)
        ),
        Decimal(0),
    )

    if total > 0:
        ratio = (used / total * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        percentage = min(int(ratio), 100)
    else:
        percentage = 0

    return BudgetUsage(
        used=used,
        total=total,
        percentage=percentage,
        remaining=total - used,
    )


def days_remaining(budget: Optional[Budget], now: Optional[datetime] = None) -> int:
    """Whole days left until the end of the budget period."""
    if budget is None:
        return 0
    now = ensure_utc(now) if now else utcnow()
    seconds = (ensure_utc(budget.period_end) - now).total_seconds()
    return max(0, math.ceil(seconds / 86400))


class BudgetEvaluator:
    """Computes budget usage from the store."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def evaluate(self, user_id: int) -> BudgetUsage:
        """Evaluate the user's current budget."""
        return self.evaluate_budget(self.storage.get_budget(user_id))

    def evaluate_budget(self, budget: Optional[Budget]) -> BudgetUsage:
        """Evaluate a given budget against its owner's transactions."""
        if budget is None:
            return BudgetUsage.empty()
        transactions = self.storage.list_transactions(budget.user_id)
        return calculate_usage(budget, transactions)
