"""
Notifier tests.
Tests for Discord and Email budget alert delivery.
"""

import smtplib
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from cryptospend.budget.types import BudgetAlert
from cryptospend.notifiers.base import NotificationResult, NotifierFactory
from cryptospend.notifiers.discord import DiscordNotifier
from cryptospend.notifiers.email import EmailNotifier


@pytest.fixture
def sample_alert():
    """Alert for 1.5 ETH spent against a 1 ETH budget."""
    return BudgetAlert(
        user_id=1,
        message="You have exceeded your budget for this period!",
        used=Decimal("1.5"),
        total=Decimal("1"),
        currency="ETH",
        triggered_at=datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc),
        budget_id=1,
    )


class TestNotificationResult:
    """Test NotificationResult model."""

    def test_success_result(self):
        """Should create success result."""
        result = NotificationResult(success=True, channel="discord")
        assert result.success is True
        assert result.channel == "discord"
        assert result.error is None

    def test_failure_result(self):
        """Should create failure result with error."""
        result = NotificationResult(
            success=False, channel="email", error="SMTP connection failed"
        )
        assert result.success is False
        assert result.error == "SMTP connection failed"


class TestBudgetAlert:
    """Test alert helpers."""

    def test_overage(self, sample_alert):
        """Should compute the amount over budget."""
        assert sample_alert.overage == Decimal("0.5")


class TestDiscordNotifier:
    """Test Discord webhook notifications."""

    @pytest.fixture
    def notifier(self):
        """Create Discord notifier."""
        return DiscordNotifier(
            webhook_url="https://discord.com/api/webhooks/123/abc", mention=True
        )

    def test_send_notification_success(self, notifier: DiscordNotifier, sample_alert):
        """Should send notification successfully."""
        with patch("requests.post") as mock_post:
            mock_post.return_value.status_code = 204
            mock_post.return_value.ok = True

            result = notifier.send(sample_alert)

        assert result.success is True
        assert result.channel == "discord"
        mock_post.assert_called_once()

    def test_send_notification_failure(self, notifier: DiscordNotifier, sample_alert):
        """Should report non-2xx responses as failures."""
        with patch("requests.post") as mock_post:
            mock_post.return_value.status_code = 400
            mock_post.return_value.ok = False
            mock_post.return_value.text = "Bad Request"

            result = notifier.send(sample_alert)

        assert result.success is False
        assert "400" in result.error

    def test_embed_contents(self, notifier: DiscordNotifier, sample_alert):
        """Should build a red embed with spend, cap and overage."""
        embed = notifier._create_embed(sample_alert)

        assert embed["title"] == "Budget Limit Exceeded"
        assert embed["color"] == 0xFF0000
        values = {field["name"]: field["value"] for field in embed["fields"]}
        assert values["Spent"] == "1.5 ETH"
        assert values["Budget"] == "1 ETH"
        assert values["Over by"] == "0.5 ETH"

    def test_mention(self, notifier: DiscordNotifier, sample_alert):
        """Should include @here when mention is enabled."""
        payload = notifier._create_payload(sample_alert)
        assert payload["content"] == "@here"

    def test_no_mention(self, sample_alert):
        """Should not mention when disabled."""
        notifier = DiscordNotifier(webhook_url="https://discord.com/api/webhooks/1/a")
        payload = notifier._create_payload(sample_alert)
        assert "content" not in payload

    def test_rate_limit_handling(self, notifier: DiscordNotifier, sample_alert):
        """Should retry once after Discord rate limiting."""
        with patch("requests.post") as mock_post:
            rate_limit_response = Mock()
            rate_limit_response.status_code = 429
            rate_limit_response.ok = False
            rate_limit_response.headers = {"Retry-After": "1"}

            success_response = Mock()
            success_response.status_code = 204
            success_response.ok = True

            mock_post.side_effect = [rate_limit_response, success_response]

            with patch("time.sleep"):
                result = notifier.send(sample_alert)

        assert mock_post.call_count == 2
        assert result.success is True

    def test_network_error_handling(self, notifier: DiscordNotifier, sample_alert):
        """Should turn connection errors into a failed result."""
        with patch("requests.post") as mock_post:
            mock_post.side_effect = requests.exceptions.ConnectionError(
                "Network unreachable"
            )

            result = notifier.send(sample_alert)

        assert result.success is False
        assert "Connection" in result.error


class TestEmailNotifier:
    """Test Email SMTP notifications."""

    @pytest.fixture
    def notifier(self):
        """Create Email notifier."""
        return EmailNotifier(
            smtp_host="smtp.gmail.com",
            smtp_port=587,
            smtp_user="sender@gmail.com",
            smtp_password="app-password",
            from_address="alerts@example.com",
            to_addresses=["user@example.com"],
        )

    def test_send_email_success(self, notifier: EmailNotifier, sample_alert):
        """Should send email over TLS."""
        with patch("smtplib.SMTP") as mock_smtp:
            mock_server = MagicMock()
            mock_smtp.return_value.__enter__.return_value = mock_server

            result = notifier.send(sample_alert)

        assert result.success is True
        assert result.channel == "email"
        mock_server.starttls.assert_called_once()
        mock_server.login.assert_called_once_with("sender@gmail.com", "app-password")
        mock_server.send_message.assert_called_once()

    def test_message_subject_and_recipients(self, sample_alert):
        """Should address every recipient with the fixed subject."""
        notifier = EmailNotifier(
            smtp_host="smtp.gmail.com",
            smtp_port=587,
            smtp_user="sender@gmail.com",
            smtp_password="app-password",
            from_address="",
            to_addresses=["user1@example.com", "user2@example.com"],
        )

        with patch("smtplib.SMTP") as mock_smtp:
            mock_server = MagicMock()
            mock_smtp.return_value.__enter__.return_value = mock_server

            notifier.send(sample_alert)

        message = mock_server.send_message.call_args[0][0]
        assert message["Subject"] == "Budget Limit Exceeded"
        assert message["From"] == "sender@gmail.com"
        assert "user1@example.com" in message["To"]
        assert "user2@example.com" in message["To"]

    def test_text_body_mentions_overage(self, notifier: EmailNotifier, sample_alert):
        """Should state the overage in the plain text body."""
        body = notifier._create_text_body(sample_alert)
        assert "Alert! You have exceeded your budget by 0.5 ETH." in body

    def test_html_body(self, notifier: EmailNotifier, sample_alert):
        """Should create HTML email body."""
        body = notifier._create_body(sample_alert)
        assert "<h2>" in body
        assert "0.5 ETH" in body

    def test_send_email_failure(self, notifier: EmailNotifier, sample_alert):
        """Should handle SMTP failure."""
        with patch("smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.side_effect = smtplib.SMTPException(
                "connection dropped"
            )

            result = notifier.send(sample_alert)

        assert result.success is False
        assert "SMTP error" in result.error

    def test_authentication_failure(self, notifier: EmailNotifier, sample_alert):
        """Should handle authentication failure."""
        with patch("smtplib.SMTP") as mock_smtp:
            mock_server = MagicMock()
            mock_server.login.side_effect = smtplib.SMTPAuthenticationError(
                535, b"bad credentials"
            )
            mock_smtp.return_value.__enter__.return_value = mock_server

            result = notifier.send(sample_alert)

        assert result.success is False
        assert "Authentication failed" in result.error

    def test_missing_credentials(self, sample_alert):
        """Should fail without contacting SMTP when credentials are absent."""
        notifier = EmailNotifier(
            smtp_host="smtp.gmail.com",
            smtp_port=587,
            smtp_user="",
            smtp_password="",
            from_address="",
            to_addresses=["user@example.com"],
        )
        with patch("smtplib.SMTP") as mock_smtp:
            result = notifier.send(sample_alert)

        assert result.success is False
        mock_smtp.assert_not_called()

    def test_missing_recipients(self, sample_alert):
        """Should fail when no recipients are configured."""
        notifier = EmailNotifier(
            smtp_host="smtp.gmail.com",
            smtp_port=587,
            smtp_user="sender@gmail.com",
            smtp_password="app-password",
            from_address="",
            to_addresses=[],
        )
        result = notifier.send(sample_alert)
        assert result.success is False
        assert "recipients" in result.error


class TestNotifierFactory:
    """Test notifier creation."""

    def test_create_discord_notifier(self):
        """Should create Discord notifier from config."""
        config = {
            "type": "discord",
            "webhook_url": "https://discord.com/api/webhooks/123/abc",
            "mention": True,
        }
        notifier = NotifierFactory.create(config)

        assert isinstance(notifier, DiscordNotifier)
        assert notifier.mention is True

    def test_create_email_notifier(self):
        """Should create Email notifier from config."""
        config = {
            "type": "email",
            "smtp_host": "smtp.gmail.com",
            "smtp_port": 587,
            "smtp_user": "user@gmail.com",
            "smtp_password": "password",
            "from_address": "alerts@example.com",
            "to_addresses": ["recipient@example.com"],
        }
        notifier = NotifierFactory.create(config)

        assert isinstance(notifier, EmailNotifier)
        assert notifier.to_addresses == ["recipient@example.com"]

    def test_invalid_notifier_type(self):
        """Should raise error for invalid notifier type."""
        with pytest.raises(ValueError, match="Unknown notifier type"):
            NotifierFactory.create({"type": "unknown"})
