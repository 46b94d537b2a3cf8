"""
Transaction synchronization pipeline.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from cryptospend.budget.alerts import OverageAlerter
from cryptospend.data.categories import AddressClassifier, classify_address
from cryptospend.data.normalizer import RecordNormalizer
from cryptospend.data.sources import SourceError, TransactionSource
from cryptospend.database.base import InsertResult, Storage
from cryptospend.database.models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Summary of one sync call."""

    success: bool
    message: str
    fetched: int = 0
    added: list[Transaction] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)


class SyncOrchestrator:
    """
    Pulls raw records, stores the new ones and checks the budget.

    Calls for the same user are serialized so the existence check and
    insert of one sync never interleave with another.
    """

    def __init__(
        self,
        storage: Storage,
        alerter: Optional[OverageAlerter] = None,
        classifier: AddressClassifier = classify_address,
        currency: str = "ETH",
        decimals: int = 18,
    ):
        """
        Initialize orchestrator.

        Args:
            storage: Record store
            alerter: Budget overage alerter (built from storage if omitted)
            classifier: Counterparty address classifier for the normalizer
            currency: Display currency of synced transactions
            decimals: Base-unit exponent of the chain
        """
        self.storage = storage
        self.alerter = alerter or OverageAlerter(storage)
        self.classifier = classifier
        self.currency = currency
        self.decimals = decimals
        self._locks: dict[int, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._locks[user_id]

    def sync(self, user_id: int, account: str, source: TransactionSource) -> SyncResult:
        """
        Sync an account's transaction history into the store.

        Args:
            user_id: Owner of the synced transactions
            account: Tracked wallet address
            source: Capability returning raw records, newest first

        Returns:
            SyncResult with fetched and newly added counts
        """
        with self._user_lock(user_id):
            try:
                records = source.fetch(account)
            except SourceError as e:
                logger.error(f"Sync for user {user_id} failed: {e}")
                return SyncResult(
                    success=False, message=f"Failed to fetch transactions: {e}"
                )

            if not records:
                logger.info(f"No transactions found for {account}")
                return SyncResult(success=True, message="No transactions found")

            normalizer = RecordNormalizer(
                account,
                user_id=user_id,
                classifier=self.classifier,
                currency=self.currency,
                decimals=self.decimals,
            )

            added = []
            for raw in records:
                tx = normalizer.normalize(raw)
                if tx is None:
                    continue
                if self.storage.transaction_exists(tx.hash):
                    logger.debug(f"Skipping already synced transaction {tx.hash}")
                    continue
                result = self.storage.insert_transaction(tx)
                if result.created:
                    added.append(result.transaction)

            logger.info(
                f"Synced user {user_id}: {len(records)} fetched, {len(added)} new"
            )

            if added:
                self.alerter.check(user_id)

            return SyncResult(
                success=True,
                message=f"{len(added)} new transactions synced",
                fetched=len(records),
                added=added,
            )

    def record_transaction(self, transaction: Transaction) -> InsertResult:
        """
        Store one transaction added by hand and check the budget.

        Args:
            transaction: Canonical transaction

        Returns:
            InsertResult; ``created=False`` for a duplicate hash
        """
        with self._user_lock(transaction.user_id):
            result = self.storage.insert_transaction(transaction)
            if result.created:
                self.alerter.check(transaction.user_id)
            else:
                logger.debug(f"Transaction {transaction.hash} already exists")
            return result
