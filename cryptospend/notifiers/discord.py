"""
Discord webhook notifier.
"""

import time
from typing import Any

import requests

from cryptospend.budget.types import BudgetAlert
from .base import Notifier, NotificationResult


class DiscordNotifier(Notifier):
    """Sends budget alerts via Discord webhook."""

    COLOR_OVERAGE = 0xFF0000  # Red

    def __init__(self, webhook_url: str, mention: bool = False):
        """
        Initialize Discord notifier.

        Args:
            webhook_url: Discord webhook URL
            mention: Whether to @here on budget alerts
        """
        self.webhook_url = webhook_url
        self.mention = mention

    def send(self, alert: BudgetAlert) -> NotificationResult:
        """Send alert to Discord."""
        try:
            response = self._send_webhook(self._create_payload(alert))

            if response.ok:
                return NotificationResult(success=True, channel="discord")
            return NotificationResult(
                success=False,
                channel="discord",
                error=f"HTTP {response.status_code}: {response.text}",
            )

        except requests.exceptions.RequestException as e:
            return NotificationResult(
                success=False,
                channel="discord",
                error=f"Connection error: {str(e)}",
            )

    def _send_webhook(self, payload: dict[str, Any]) -> requests.Response:
        """Send webhook, retrying once when rate limited."""
        response = requests.post(self.webhook_url, json=payload, timeout=10)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "1")
            time.sleep(float(retry_after))
            response = requests.post(self.webhook_url, json=payload, timeout=10)

        return response

    def _create_payload(self, alert: BudgetAlert) -> dict[str, Any]:
        """Create Discord webhook payload."""
        payload: dict[str, Any] = {"embeds": [self._create_embed(alert)]}
        if self.mention:
            payload["content"] = "@here"
        return payload

    def _create_embed(self, alert: BudgetAlert) -> dict[str, Any]:
        """Create Discord embed for alert."""
        return {
            "title": "Budget Limit Exceeded",
            "description": alert.message,
            "color": self.COLOR_OVERAGE,
            "fields": [
                {
                    "name": "Spent",
                    "value": f"{alert.used} {alert.currency}",
                    "inline": True,
                },
                {
                    "name": "Budget",
                    "value": f"{alert.total} {alert.currency}",
                    "inline": True,
                },
                {
                    "name": "Over by",
                    "value": f"{alert.overage} {alert.currency}",
                    "inline": True,
                },
            ],
            "timestamp": alert.triggered_at.isoformat(),
        }
