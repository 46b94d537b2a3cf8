"""
Email SMTP notifier.
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from cryptospend.budget.types import BudgetAlert
from .base import Notifier, NotificationResult


class EmailNotifier(Notifier):
    """Sends budget alerts via email SMTP."""

    SUBJECT = "Budget Limit Exceeded"

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_address: str,
        to_addresses: list[str],
    ):
        """
        Initialize email notifier.

        Args:
            smtp_host: SMTP server hostname
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_address: Sender email address
            to_addresses: List of recipient email addresses
        """
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_address = from_address or smtp_user
        self.to_addresses = to_addresses

    def send(self, alert: BudgetAlert) -> NotificationResult:
        """Send alert via email."""
        if not self.smtp_user or not self.smtp_password:
            return NotificationResult(
                success=False,
                channel="email",
                error="Email credentials are not configured",
            )
        if not self.to_addresses:
            return NotificationResult(
                success=False, channel="email", error="No recipients configured"
            )

        try:
            message = self._create_message(alert)

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)

            return NotificationResult(success=True, channel="email")

        except smtplib.SMTPAuthenticationError as e:
            return NotificationResult(
                success=False,
                channel="email",
                error=f"Authentication failed: {str(e)}",
            )
        except (smtplib.SMTPException, OSError) as e:
            return NotificationResult(
                success=False,
                channel="email",
                error=f"SMTP error: {str(e)}",
            )

    def _create_message(self, alert: BudgetAlert) -> MIMEMultipart:
        """Create email message."""
        message = MIMEMultipart("alternative")
        message["Subject"] = self.SUBJECT
        message["From"] = self.from_address
        message["To"] = ", ".join(self.to_addresses)

        message.attach(MIMEText(self._create_text_body(alert), "plain"))
        message.attach(MIMEText(self._create_body(alert), "html"))

        return message

    def _create_text_body(self, alert: BudgetAlert) -> str:
        """Create plain text email body."""
        return (
            f"Alert! You have exceeded your budget by "
            f"{alert.overage} {alert.currency}.\n\n"
            f"Spent: {alert.used} {alert.currency}\n"
            f"Budget: {alert.total} {alert.currency}\n"
            f"Time: {alert.triggered_at.strftime('%Y-%m-%d %H:%M:%S')}\n"
        )

    def _create_body(self, alert: BudgetAlert) -> str:
        """Create HTML email body."""
        return f"""
<h2>Budget Alert</h2>
<p>Your crypto spending has exceeded the budget limit.</p>
<p>Amount over budget: <strong>{alert.overage} {alert.currency}</strong></p>
<p>Spent {alert.used} of {alert.total} {alert.currency}.</p>
<p>Please review your transactions and adjust your spending accordingly.</p>
"""
