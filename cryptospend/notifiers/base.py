"""
Delivery channels for budget alerts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from cryptospend.budget.types import BudgetAlert


@dataclass
class NotificationResult:
    """Outcome of pushing one budget alert through one channel."""

    success: bool
    channel: str
    error: Optional[str] = None


class Notifier(ABC):
    """A channel that tells the wallet owner their budget was exceeded."""

    @abstractmethod
    def send(self, alert: BudgetAlert) -> NotificationResult:
        """
        Push a budget overage to the owner.

        Transport errors are reported in the result, not raised.

        Args:
            alert: Spend, cap and currency of the exceeded budget

        Returns:
            NotificationResult for this channel
        """


class NotifierFactory:
    """Builds delivery channels from the ``notifications`` config section."""

    @staticmethod
    def create(config: dict[str, Any]) -> Notifier:
        """
        Build the channel named by ``config["type"]``.

        Args:
            config: Channel settings, as produced by
                ``NotificationsConfig.channel_configs()``

        Returns:
            DiscordNotifier or EmailNotifier

        Raises:
            ValueError: If the channel type is not discord or email
        """
        channel = config.get("type")

        if channel == "email":
            from .email import EmailNotifier

            return EmailNotifier(
                smtp_host=config.get("smtp_host", ""),
                smtp_port=config.get("smtp_port", 587),
                smtp_user=config.get("smtp_user", ""),
                smtp_password=config.get("smtp_password", ""),
                from_address=config.get("from_address", ""),
                to_addresses=config.get("to_addresses", []),
            )

        if channel == "discord":
            from .discord import DiscordNotifier

            return DiscordNotifier(
                webhook_url=config.get("webhook_url", ""),
                mention=config.get("mention", False),
            )

        raise ValueError(f"Unknown notifier type: {channel}")
