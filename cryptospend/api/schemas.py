"""
Request and response schemas for the HTTP API.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cryptospend.budget.types import BudgetUsage
from cryptospend.data.normalizer import format_amount
from cryptospend.database.models import (
    DEFAULT_USER_ID,
    Budget,
    Notification,
    Transaction,
    TransactionStatus,
    TransactionType,
    ensure_utc,
    utcnow,
)


def _parse_amount(value: Any, positive: bool) -> str:
    if isinstance(value, bool):
        raise ValueError("must be a decimal number")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("must be a decimal number")
    if not number.is_finite():
        raise ValueError("must be a finite number")
    if positive and number <= 0:
        raise ValueError("must be greater than 0")
    if number < 0:
        raise ValueError("must not be negative")
    return format_amount(number)


class APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TransactionCreate(APIModel):
    user_id: int = Field(DEFAULT_USER_ID, alias="userId")
    hash: str = Field(min_length=1)
    from_address: str = Field(alias="from", min_length=1)
    to_address: str = Field("", alias="to")
    amount: str
    timestamp: datetime
    currency: str = Field("ETH", min_length=1)
    category: Optional[str] = None
    status: TransactionStatus
    type: TransactionType

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        return _parse_amount(v, positive=False)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, str):
            return TransactionStatus.parse(v)
        return v

    def to_model(self) -> Transaction:
        return Transaction(
            hash=self.hash,
            user_id=self.user_id,
            from_address=self.from_address,
            to_address=self.to_address,
            amount=self.amount,
            timestamp=ensure_utc(self.timestamp),
            currency=self.currency,
            status=self.status,
            type=self.type,
            category=self.category,
        )


class TransactionOut(APIModel):
    id: Optional[int] = None
    user_id: int = Field(alias="userId")
    hash: str
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    amount: str
    timestamp: datetime
    currency: str
    category: Optional[str] = None
    status: TransactionStatus
    type: TransactionType

    @classmethod
    def from_model(cls, tx: Transaction) -> "TransactionOut":
        return cls(
            id=tx.id,
            user_id=tx.user_id,
            hash=tx.hash,
            from_address=tx.from_address,
            to_address=tx.to_address,
            amount=tx.amount,
            timestamp=tx.timestamp,
            currency=tx.currency,
            category=tx.category,
            status=tx.status,
            type=tx.type,
        )


class SyncRequest(APIModel):
    user_id: int = Field(DEFAULT_USER_ID, alias="userId")
    account: Optional[str] = None
    # Raw wallet/explorer records; omitted means fetch from the explorer
    transactions: Optional[list[Any]] = None


class SyncResponse(APIModel):
    success: bool
    message: str
    fetched: int = 0
    added: int = 0
    transactions: list[TransactionOut] = Field(default_factory=list)


class BudgetCreate(APIModel):
    user_id: int = Field(DEFAULT_USER_ID, alias="userId")
    amount: str
    period_start: datetime = Field(alias="periodStart")
    period_end: datetime = Field(alias="periodEnd")
    currency: str = Field("ETH", min_length=1)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        return _parse_amount(v, positive=True)

    @model_validator(mode="after")
    def validate_period(self):
        if ensure_utc(self.period_end) <= ensure_utc(self.period_start):
            raise ValueError("periodEnd must be after periodStart")
        return self

    def to_model(self) -> Budget:
        return Budget(
            user_id=self.user_id,
            amount=self.amount,
            period_start=ensure_utc(self.period_start),
            period_end=ensure_utc(self.period_end),
            currency=self.currency,
        )


class BudgetUpdate(APIModel):
    # The owner cannot be changed; unknown fields such as userId are rejected
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    amount: Optional[str] = None
    period_start: Optional[datetime] = Field(None, alias="periodStart")
    period_end: Optional[datetime] = Field(None, alias="periodEnd")
    currency: Optional[str] = Field(None, min_length=1)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        if v is None:
            return v
        return _parse_amount(v, positive=True)

    def changes(self) -> dict[str, Any]:
        """Fields that were set, with datetimes in UTC."""
        changes = self.model_dump(exclude_none=True)
        for name in ("period_start", "period_end"):
            if name in changes:
                changes[name] = ensure_utc(changes[name])
        return changes


class BudgetOut(APIModel):
    id: int
    user_id: int = Field(alias="userId")
    amount: str
    period_start: datetime = Field(alias="periodStart")
    period_end: datetime = Field(alias="periodEnd")
    currency: str
    overage_notified: bool = Field(alias="overageNotified")

    @classmethod
    def from_model(cls, budget: Budget) -> "BudgetOut":
        return cls(
            id=budget.id,
            user_id=budget.user_id,
            amount=budget.amount,
            period_start=budget.period_start,
            period_end=budget.period_end,
            currency=budget.currency,
            overage_notified=budget.overage_notified,
        )


class BudgetUsageOut(APIModel):
    used: str
    total: str
    percentage: int
    remaining: str
    exceeded: bool
    days_remaining: int = Field(alias="daysRemaining")

    @classmethod
    def from_usage(cls, usage: BudgetUsage, days_remaining: int) -> "BudgetUsageOut":
        return cls(
            used=format_amount(usage.used),
            total=format_amount(usage.total),
            percentage=usage.percentage,
            remaining=format_amount(usage.remaining),
            exceeded=usage.exceeded,
            days_remaining=days_remaining,
        )


class NotificationCreate(APIModel):
    user_id: int = Field(DEFAULT_USER_ID, alias="userId")
    message: str = Field(min_length=1)
    timestamp: Optional[datetime] = None

    def to_model(self) -> Notification:
        return Notification(
            user_id=self.user_id,
            message=self.message,
            timestamp=ensure_utc(self.timestamp) if self.timestamp else utcnow(),
        )


class NotificationOut(APIModel):
    id: int
    user_id: int = Field(alias="userId")
    message: str
    timestamp: datetime
    read: bool

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationOut":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            message=notification.message,
            timestamp=notification.timestamp,
            read=notification.read,
        )
