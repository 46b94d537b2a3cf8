"""
Data models for the spending tracker.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_USER_ID = 1
DEFAULT_CATEGORY = "Other"
UNCATEGORIZED = "Uncategorized"


class TransactionType(str, Enum):
    """Direction of a transfer relative to the tracked account."""

    SENT = "sent"
    RECEIVED = "received"


class TransactionStatus(str, Enum):
    """On-chain status of a transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: str) -> "TransactionStatus":
        """Parse a status string, accepting "completed" as confirmed."""
        normalized = str(value).strip().lower()
        if normalized == "completed":
            return cls.CONFIRMED
        return cls(normalized)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Transaction:
    """One on-chain transfer attributed to the tracked account."""

    hash: str
    user_id: int
    from_address: str
    to_address: str
    amount: str  # decimal string in display units, e.g. "0.5" ETH
    timestamp: datetime
    currency: str
    status: TransactionStatus
    type: TransactionType
    category: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Budget:
    """Spending cap for a contiguous period."""

    user_id: int
    amount: str
    period_start: datetime
    period_end: datetime
    currency: str
    id: Optional[int] = None
    overage_notified: bool = False  # reset whenever the budget changes


@dataclass
class Notification:
    """One-shot alert shown to the user."""

    user_id: int
    message: str
    timestamp: datetime
    read: bool = False
    id: Optional[int] = None
