"""
Conversion of raw wallet/explorer records into Transactions.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from cryptospend.database.models import (
    DEFAULT_CATEGORY,
    DEFAULT_USER_ID,
    Transaction,
    TransactionStatus,
    TransactionType,
    ensure_utc,
    utcnow,
)
from .categories import AddressClassifier, classify_address

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = {"confirmed", "completed", "success", "1"}
FAILED_STATUSES = {"failed", "error", "0"}

# Unix times above this are taken as milliseconds
_MILLISECONDS_THRESHOLD = 10**11


def format_amount(value: Decimal) -> str:
    """Render a decimal as a plain string without exponent or trailing zeros."""
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


class RecordNormalizer:
    """Normalizes raw transaction records for one tracked account."""

    def __init__(
        self,
        account: str,
        user_id: int = DEFAULT_USER_ID,
        classifier: AddressClassifier = classify_address,
        currency: str = "ETH",
        decimals: int = 18,
        default_category: str = DEFAULT_CATEGORY,
    ):
        """
        Initialize normalizer.

        Args:
            account: Tracked wallet address
            user_id: Owner of the produced transactions
            classifier: Maps a counterparty address to a category
            currency: Display currency of the chain
            decimals: Base-unit exponent (18 for wei -> ETH)
            default_category: Category when the classifier has no match
        """
        self.account = account.lower()
        self.user_id = user_id
        self.classifier = classifier
        self.currency = currency
        self.base_unit = Decimal(10) ** decimals
        self.default_category = default_category

    def normalize(self, raw: dict[str, Any]) -> Optional[Transaction]:
        """
        Normalize a single raw record.

        Args:
            raw: Record with at least hash, from, to, value|amount, timestamp

        Returns:
            Transaction, or None if the record has no hash
        """
        if not isinstance(raw, dict):
            logger.warning(f"Dropping non-mapping record: {raw!r}")
            return None

        tx_hash = str(raw.get("hash") or "").strip()
        if not tx_hash:
            logger.warning(f"Dropping record without hash: {raw!r}")
            return None

        from_address = str(raw.get("from") or "")
        to_address = str(raw.get("to") or "")

        if from_address.lower() == self.account:
            tx_type = TransactionType.SENT
            counterparty = to_address
        else:
            tx_type = TransactionType.RECEIVED
            counterparty = from_address

        return Transaction(
            hash=tx_hash,
            user_id=self.user_id,
            from_address=from_address,
            to_address=to_address,
            amount=self._parse_amount(tx_hash, raw),
            timestamp=self._parse_timestamp(tx_hash, raw),
            currency=self.currency,
            status=self._parse_status(raw),
            type=tx_type,
            category=self.classifier(counterparty) or self.default_category,
        )

    def normalize_batch(self, records: Iterable[dict[str, Any]]) -> list[Transaction]:
        """Normalize records in order, skipping the ones that are dropped."""
        transactions = []
        for raw in records:
            tx = self.normalize(raw)
            if tx is not None:
                transactions.append(tx)
        return transactions

    def _parse_amount(self, tx_hash: str, raw: dict[str, Any]) -> str:
        """Convert value (base units) or amount (display units) to a string."""
        if raw.get("value") not in (None, ""):
            value, scale = raw["value"], self.base_unit
        elif raw.get("amount") not in (None, ""):
            value, scale = raw["amount"], Decimal(1)
        else:
            logger.warning(f"Record {tx_hash} has no value, using 0")
            return "0"

        try:
            if isinstance(value, bool):
                raise TypeError("boolean amount")
            text = str(value).strip()
            if text.lower().startswith("0x"):
                number = Decimal(int(text, 16))
            else:
                number = Decimal(text)
            amount = number / scale
        except (InvalidOperation, ValueError, TypeError):
            logger.warning(f"Record {tx_hash} has unparseable value {value!r}, using 0")
            return "0"

        if not amount.is_finite() or amount < 0:
            logger.warning(f"Record {tx_hash} has invalid value {value!r}, using 0")
            return "0"

        return format_amount(amount)

    def _parse_timestamp(self, tx_hash: str, raw: dict[str, Any]) -> datetime:
        """Parse unix seconds/milliseconds or ISO-8601; default to now."""
        value = None
        for key in ("timestamp", "timeStamp"):
            if raw.get(key) not in (None, ""):
                value = raw[key]
                break

        if value is None:
            return utcnow()

        try:
            if isinstance(value, datetime):
                return ensure_utc(value)

            if isinstance(value, (int, float)) and not isinstance(value, bool):
                seconds = float(value)
            elif isinstance(value, str) and value.strip().isdigit():
                seconds = float(value.strip())
            else:
                text = str(value).strip()
                if text.endswith("Z"):
                    text = text[:-1] + "+00:00"
                return ensure_utc(datetime.fromisoformat(text))

            if seconds > _MILLISECONDS_THRESHOLD:
                seconds /= 1000
            return datetime.fromtimestamp(seconds, tz=timezone.utc)

        except (ValueError, OverflowError, OSError):
            logger.warning(f"Record {tx_hash} has unparseable timestamp {value!r}")
            return utcnow()

    def _parse_status(self, raw: dict[str, Any]) -> TransactionStatus:
        """Map an explicit status or Etherscan error flags to a status."""
        status = raw.get("status")
        status = "" if status is None else str(status).strip().lower()
        if status in CONFIRMED_STATUSES:
            return TransactionStatus.CONFIRMED
        if status in FAILED_STATUSES:
            return TransactionStatus.FAILED
        if status == "pending":
            return TransactionStatus.PENDING

        is_error = str(raw.get("isError", "")).strip()
        receipt = str(raw.get("txreceipt_status", "")).strip()
        if is_error == "1" or receipt == "0":
            return TransactionStatus.FAILED
        if receipt == "1" or is_error == "0":
            return TransactionStatus.CONFIRMED
        return TransactionStatus.PENDING
