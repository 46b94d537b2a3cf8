"""
Repository classes for CRUD operations on the SQLite backend.
"""

import sqlite3
from datetime import datetime
from typing import Any, Optional

from .base import BUDGET_UPDATE_FIELDS, InsertResult, Storage
from .connection import Database
from .models import (
    Budget,
    Notification,
    Transaction,
    TransactionStatus,
    TransactionType,
    ensure_utc,
)


def _to_db_time(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def _from_db_time(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


class TransactionRepository:
    """CRUD operations for transactions."""

    def __init__(self, db: Database):
        self.db = db

    def insert(self, transaction: Transaction) -> InsertResult:
        """Insert a transaction, ignoring a duplicate hash."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO transactions
                (user_id, hash, from_address, to_address, amount, timestamp,
                 currency, category, status, type)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    transaction.user_id,
                    transaction.hash,
                    transaction.from_address,
                    transaction.to_address,
                    transaction.amount,
                    _to_db_time(transaction.timestamp),
                    transaction.currency,
                    transaction.category,
                    transaction.status.value,
                    transaction.type.value,
                ),
            )
            self.db.connection.commit()

            if cursor.rowcount == 0:
                return InsertResult(
                    created=False, transaction=self.get_by_hash(transaction.hash)
                )

            transaction.id = cursor.lastrowid
            return InsertResult(created=True, transaction=transaction)

    def exists(self, tx_hash: str) -> bool:
        """Check if a hash is already stored."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute("SELECT 1 FROM transactions WHERE hash = ?", (tx_hash,))
            return cursor.fetchone() is not None

    def get_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        """Get transaction by hash."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute("SELECT * FROM transactions WHERE hash = ?", (tx_hash,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_transaction(row)

    def list_for_user(self, user_id: int) -> list[Transaction]:
        """List a user's transactions, newest first."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                "SELECT * FROM transactions WHERE user_id = ?",
                (user_id,),
            )
            rows = cursor.fetchall()
        transactions = [self._row_to_transaction(row) for row in rows]
        transactions.sort(key=lambda tx: tx.timestamp, reverse=True)
        return transactions

    def _row_to_transaction(self, row) -> Transaction:
        """Convert database row to Transaction."""
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            hash=row["hash"],
            from_address=row["from_address"],
            to_address=row["to_address"],
            amount=row["amount"],
            timestamp=_from_db_time(row["timestamp"]),
            currency=row["currency"],
            category=row["category"],
            status=TransactionStatus(row["status"]),
            type=TransactionType(row["type"]),
        )


class BudgetRepository:
    """CRUD operations for budgets."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(self, budget: Budget) -> Budget:
        """Replace the user's budget or create one."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                """
                INSERT INTO budgets
                (user_id, amount, period_start, period_end, currency, overage_notified)
                VALUES (?, ?, ?, ?, ?, 0)
                ON CONFLICT(user_id) DO UPDATE SET
                    amount = excluded.amount,
                    period_start = excluded.period_start,
                    period_end = excluded.period_end,
                    currency = excluded.currency,
                    overage_notified = 0
                """,
                (
                    budget.user_id,
                    budget.amount,
                    _to_db_time(budget.period_start),
                    _to_db_time(budget.period_end),
                    budget.currency,
                ),
            )
            self.db.connection.commit()
            return self.get_by_user(budget.user_id)

    def get_by_user(self, user_id: int) -> Optional[Budget]:
        """Get the user's budget."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute("SELECT * FROM budgets WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_budget(row)

    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute("SELECT * FROM budgets WHERE id = ?", (budget_id,))
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_budget(row)

    def update(self, budget_id: int, changes: dict[str, Any]) -> Optional[Budget]:
        """Update the given columns and clear the overage flag."""
        unknown = set(changes) - BUDGET_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown budget fields: {sorted(unknown)}")

        values = {}
        for name, value in changes.items():
            if isinstance(value, datetime):
                value = _to_db_time(value)
            values[name] = value

        assignments = [f"{name} = ?" for name in values]
        assignments.append("overage_notified = 0")

        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                f"UPDATE budgets SET {', '.join(assignments)} WHERE id = ?",
                (*values.values(), budget_id),
            )
            self.db.connection.commit()
            if cursor.rowcount == 0:
                return None
            return self.get_by_id(budget_id)

    def mark_notified(self, budget_id: int) -> None:
        """Set the overage flag."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                "UPDATE budgets SET overage_notified = 1 WHERE id = ?",
                (budget_id,),
            )
            self.db.connection.commit()

    def _row_to_budget(self, row) -> Budget:
        """Convert database row to Budget."""
        return Budget(
            id=row["id"],
            user_id=row["user_id"],
            amount=row["amount"],
            period_start=_from_db_time(row["period_start"]),
            period_end=_from_db_time(row["period_end"]),
            currency=row["currency"],
            overage_notified=bool(row["overage_notified"]),
        )


class NotificationRepository:
    """CRUD operations for notifications."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, notification: Notification) -> Notification:
        """Create a new unread notification."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                """
                INSERT INTO notifications (user_id, message, timestamp, read)
                VALUES (?, ?, ?, 0)
                """,
                (
                    notification.user_id,
                    notification.message,
                    _to_db_time(notification.timestamp),
                ),
            )
            self.db.connection.commit()
        notification.id = cursor.lastrowid
        notification.read = False
        return notification

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        """Get notification by ID."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                "SELECT * FROM notifications WHERE id = ?", (notification_id,)
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_notification(row)

    def list_for_user(self, user_id: int) -> list[Notification]:
        """List a user's notifications, newest first."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY id DESC",
                (user_id,),
            )
            rows = cursor.fetchall()
        notifications = [self._row_to_notification(row) for row in rows]
        notifications.sort(key=lambda n: n.timestamp, reverse=True)
        return notifications

    def mark_read(self, notification_id: int) -> Optional[Notification]:
        """Mark notification as read."""
        with self.db.lock:
            cursor = self.db.connection.cursor()
            cursor.execute(
                "UPDATE notifications SET read = 1 WHERE id = ?",
                (notification_id,),
            )
            self.db.connection.commit()
            if cursor.rowcount == 0:
                return None
            return self.get_by_id(notification_id)

    def _row_to_notification(self, row) -> Notification:
        """Convert database row to Notification."""
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            message=row["message"],
            timestamp=_from_db_time(row["timestamp"]),
            read=bool(row["read"]),
        )


class SQLiteStorage(Storage):
    """Storage backed by a SQLite database."""

    def __init__(self, db: Database):
        self.db = db
        self.transactions = TransactionRepository(db)
        self.budgets = BudgetRepository(db)
        self.notifications = NotificationRepository(db)

    def transaction_exists(self, tx_hash: str) -> bool:
        return self.transactions.exists(tx_hash)

    def get_transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        return self.transactions.get_by_hash(tx_hash)

    def insert_transaction(self, transaction: Transaction) -> InsertResult:
        return self.transactions.insert(transaction)

    def list_transactions(self, user_id: int) -> list[Transaction]:
        return self.transactions.list_for_user(user_id)

    def get_budget(self, user_id: int) -> Optional[Budget]:
        return self.budgets.get_by_user(user_id)

    def get_budget_by_id(self, budget_id: int) -> Optional[Budget]:
        return self.budgets.get_by_id(budget_id)

    def save_budget(self, budget: Budget) -> Budget:
        return self.budgets.upsert(budget)

    def update_budget(self, budget_id: int, **changes: Any) -> Optional[Budget]:
        return self.budgets.update(budget_id, changes)

    def mark_budget_notified(self, budget_id: int) -> None:
        self.budgets.mark_notified(budget_id)

    def record_overage(self, budget_id: int, notification: Notification) -> Notification:
        with self.db.lock:
            connection = self.db.connection
            try:
                cursor = connection.execute(
                    "UPDATE budgets SET overage_notified = 1 WHERE id = ?",
                    (budget_id,),
                )
                if cursor.rowcount == 0:
                    raise ValueError(f"Unknown budget: {budget_id}")
                cursor = connection.execute(
                    """
                    INSERT INTO notifications (user_id, message, timestamp, read)
                    VALUES (?, ?, ?, 0)
                    """,
                    (
                        notification.user_id,
                        notification.message,
                        _to_db_time(notification.timestamp),
                    ),
                )
                connection.commit()
            except (sqlite3.Error, ValueError):
                connection.rollback()
                raise
        notification.id = cursor.lastrowid
        notification.read = False
        return notification

    def list_notifications(self, user_id: int) -> list[Notification]:
        return self.notifications.list_for_user(user_id)

    def create_notification(self, notification: Notification) -> Notification:
        return self.notifications.create(notification)

    def mark_notification_read(self, notification_id: int) -> Optional[Notification]:
        return self.notifications.mark_read(notification_id)

    def close(self) -> None:
        self.db.close()
