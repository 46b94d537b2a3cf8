"""
Budget overage alerting.
"""

import logging
from typing import Optional

from cryptospend.database.base import Storage
from cryptospend.database.models import Notification, utcnow
from cryptospend.notifiers.base import Notifier
from .evaluator import BudgetEvaluator
from .types import BudgetAlert

logger = logging.getLogger(__name__)

OVERAGE_MESSAGE = "You have exceeded your budget for this period!"


class OverageAlerter:
    """
    Emits one notification per budget overage.

    The budget's ``overage_notified`` flag is the per-user state: it flips
    to True when the notification is created and is cleared by the store
    whenever the budget is saved or updated.
    """

    def __init__(
        self,
        storage: Storage,
        channels: Optional[list[Notifier]] = None,
        evaluator: Optional[BudgetEvaluator] = None,
    ):
        """
        Initialize alerter.

        Args:
            storage: Record store
            channels: Delivery channels for the external alert
            evaluator: Budget evaluator (built from storage if omitted)
        """
        self.storage = storage
        self.channels = channels or []
        self.evaluator = evaluator or BudgetEvaluator(storage)

    def check(self, user_id: int) -> Optional[Notification]:
        """
        Evaluate the user's budget and notify on a new overage.

        Args:
            user_id: User to check

        Returns:
            The created Notification, or None if nothing fired
        """
        budget = self.storage.get_budget(user_id)
        if budget is None:
            return None

        usage = self.evaluator.evaluate_budget(budget)
        if not usage.exceeded:
            return None

        if budget.overage_notified:
            logger.debug(f"User {user_id} already notified for budget {budget.id}")
            return None

        notification = self.storage.record_overage(
            budget.id,
            Notification(user_id=user_id, message=OVERAGE_MESSAGE, timestamp=utcnow()),
        )
        logger.info(
            f"User {user_id} exceeded budget {budget.id}: "
            f"{usage.used} of {usage.total} {budget.currency}"
        )

        self._deliver(
            BudgetAlert(
                user_id=user_id,
                message=OVERAGE_MESSAGE,
                used=usage.used,
                total=usage.total,
                currency=budget.currency,
                triggered_at=notification.timestamp,
                budget_id=budget.id,
            )
        )
        return notification

    def _deliver(self, alert: BudgetAlert) -> None:
        """Forward the alert to every channel; failures are only logged."""
        for channel in self.channels:
            try:
                result = channel.send(alert)
            except Exception as e:
                logger.error(f"Delivery via {type(channel).__name__} raised: {e}")
                continue

            if result.success:
                logger.info(f"Budget alert delivered via {result.channel}")
            else:
                logger.warning(
                    f"Budget alert delivery via {result.channel} failed: {result.error}"
                )
