"""
In-memory storage backend.
"""

import threading
from dataclasses import replace
from typing import Any, Optional

from .base import BUDGET_UPDATE_FIELDS, InsertResult, Storage
from .models import Budget, Notification, Transaction, ensure_utc


class MemoryStorage(Storage):
    """Storage kept in process memory, keyed for O(1) hash lookups."""

    def __init__(self):
        self._lock = threading.RLock()
        self._transactions: dict[str, Transaction] = {}
        self._budgets: dict[int, Budget] = {}
        self._notifications: dict[int, Notification] = {}
        self._next_transaction_id = 1
        self._next_budget_id = 1
        self._next_notification_id = 1

    def transaction_exists(self, tx_hash: str) -> bool:
        return tx_hash in self._transactions

    def get_transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        tx = self._transactions.get(tx_hash)
        return replace(tx) if tx else None

    def insert_transaction(self, transaction: Transaction) -> InsertResult:
        with self._lock:
            existing = self._transactions.get(transaction.hash)
            if existing is not None:
                return InsertResult(created=False, transaction=replace(existing))

            stored = replace(
                transaction,
                id=self._next_transaction_id,
                timestamp=ensure_utc(transaction.timestamp),
            )
            self._next_transaction_id += 1
            self._transactions[stored.hash] = stored
            return InsertResult(created=True, transaction=replace(stored))

    def list_transactions(self, user_id: int) -> list[Transaction]:
        with self._lock:
            found = [
                replace(tx)
                for tx in self._transactions.values()
                if tx.user_id == user_id
            ]
        found.sort(key=lambda tx: tx.timestamp, reverse=True)
        return found

    def get_budget(self, user_id: int) -> Optional[Budget]:
        with self._lock:
            for budget in self._budgets.values():
                if budget.user_id == user_id:
                    return replace(budget)
        return None

    def get_budget_by_id(self, budget_id: int) -> Optional[Budget]:
        budget = self._budgets.get(budget_id)
        return replace(budget) if budget else None

    def save_budget(self, budget: Budget) -> Budget:
        with self._lock:
            current = self.get_budget(budget.user_id)
            if current is not None:
                budget_id = current.id
            else:
                budget_id = self._next_budget_id
                self._next_budget_id += 1

            stored = replace(
                budget,
                id=budget_id,
                period_start=ensure_utc(budget.period_start),
                period_end=ensure_utc(budget.period_end),
                overage_notified=False,
            )
            self._budgets[budget_id] = stored
            return replace(stored)

    def update_budget(self, budget_id: int, **changes: Any) -> Optional[Budget]:
        unknown = set(changes) - BUDGET_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown budget fields: {sorted(unknown)}")

        with self._lock:
            current = self._budgets.get(budget_id)
            if current is None:
                return None
            for name in ("period_start", "period_end"):
                if name in changes:
                    changes[name] = ensure_utc(changes[name])
            updated = replace(current, overage_notified=False, **changes)
            self._budgets[budget_id] = updated
            return replace(updated)

    def mark_budget_notified(self, budget_id: int) -> None:
        with self._lock:
            current = self._budgets.get(budget_id)
            if current is not None:
                self._budgets[budget_id] = replace(current, overage_notified=True)

    def record_overage(self, budget_id: int, notification: Notification) -> Notification:
        with self._lock:
            if budget_id not in self._budgets:
                raise ValueError(f"Unknown budget: {budget_id}")
            created = self.create_notification(notification)
            self.mark_budget_notified(budget_id)
            return created

    def list_notifications(self, user_id: int) -> list[Notification]:
        with self._lock:
            found = [
                replace(n)
                for n in reversed(list(self._notifications.values()))
                if n.user_id == user_id
            ]
        found.sort(key=lambda n: n.timestamp, reverse=True)
        return found

    def create_notification(self, notification: Notification) -> Notification:
        with self._lock:
            stored = replace(
                notification,
                id=self._next_notification_id,
                timestamp=ensure_utc(notification.timestamp),
                read=False,
            )
            self._next_notification_id += 1
            self._notifications[stored.id] = stored
            return replace(stored)

    def mark_notification_read(self, notification_id: int) -> Optional[Notification]:
        with self._lock:
            current = self._notifications.get(notification_id)
            if current is None:
                return None
            updated = replace(current, read=True)
            self._notifications[notification_id] = updated
            return replace(updated)
