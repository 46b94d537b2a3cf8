"""
Storage interface shared by every persistence backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from .models import Budget, Notification, Transaction, UNCATEGORIZED


@dataclass
class InsertResult:
    """
    Outcome of an idempotent transaction insert.

    ``created`` is False when the hash was already stored; ``transaction``
    is then the existing record and nothing was written.
    """

    created: bool
    transaction: Transaction

    @property
    def conflict(self) -> bool:
        return not self.created


class Storage(ABC):
    """Record store for transactions, budgets and notifications."""

    # Transactions

    @abstractmethod
    def transaction_exists(self, tx_hash: str) -> bool:
        """Check whether a transaction with this hash is stored."""

    @abstractmethod
    def get_transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        """Get a transaction by its hash."""

    @abstractmethod
    def insert_transaction(self, transaction: Transaction) -> InsertResult:
        """
        Insert a transaction unless its hash already exists.

        Args:
            transaction: Transaction to store

        Returns:
            InsertResult; a duplicate hash yields ``created=False``
        """

    @abstractmethod
    def list_transactions(self, user_id: int) -> list[Transaction]:
        """List a user's transactions, newest first."""

    def get_categorized_transactions(
        self, user_id: int
    ) -> dict[str, list[Transaction]]:
        """Group a user's transactions by category."""
        grouped: dict[str, list[Transaction]] = {}
        for tx in self.list_transactions(user_id):
            grouped.setdefault(tx.category or UNCATEGORIZED, []).append(tx)
        return grouped

    # Budgets

    @abstractmethod
    def get_budget(self, user_id: int) -> Optional[Budget]:
        """Get the user's current budget."""

    @abstractmethod
    def get_budget_by_id(self, budget_id: int) -> Optional[Budget]:
        """Get a budget by ID."""

    @abstractmethod
    def save_budget(self, budget: Budget) -> Budget:
        """
        Store the user's current budget, replacing any existing one.

        The overage flag always starts cleared.
        """

    @abstractmethod
    def update_budget(self, budget_id: int, **changes: Any) -> Optional[Budget]:
        """
        Apply a partial update and clear the overage flag.

        Returns:
            Updated budget, or None if no budget has this ID
        """

    @abstractmethod
    def mark_budget_notified(self, budget_id: int) -> None:
        """Record that the overage notification was emitted."""

    @abstractmethod
    def record_overage(self, budget_id: int, notification: Notification) -> Notification:
        """
        Create the overage notification and set the budget flag atomically.

        Either both writes happen or neither does.
        """

    # Notifications

    @abstractmethod
    def list_notifications(self, user_id: int) -> list[Notification]:
        """List a user's notifications, newest first."""

    @abstractmethod
    def create_notification(self, notification: Notification) -> Notification:
        """Create a notification; it always starts unread."""

    @abstractmethod
    def mark_notification_read(self, notification_id: int) -> Optional[Notification]:
        """Mark a notification as read; None if it does not exist."""

    def close(self) -> None:
        """Release backend resources."""


# Owner is fixed at creation; one budget per user
BUDGET_UPDATE_FIELDS = {"amount", "period_start", "period_end", "currency"}


class StorageFactory:
    """Factory for creating the storage backend chosen at startup."""

    @staticmethod
    def create(config: dict[str, Any]) -> Storage:
        """
        Create a storage backend from configuration.

        Args:
            config: Database configuration dict with ``backend`` and ``path``

        Returns:
            Initialized Storage instance

        Raises:
            ValueError: If backend type is unknown
        """
        backend = config.get("backend", "sqlite")

        if backend == "sqlite":
            from .connection import Database
            from .repository import SQLiteStorage

            db = Database(config.get("path", "data/cryptospend.db"))
            db.initialize()
            return SQLiteStorage(db)

        elif backend == "memory":
            from .memory import MemoryStorage

            return MemoryStorage()

        else:
            raise ValueError(f"Unknown storage backend: {backend}")
