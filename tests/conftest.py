"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cryptospend.database.connection import Database
from cryptospend.database.memory import MemoryStorage
from cryptospend.database.models import (
    Budget,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from cryptospend.database.repository import SQLiteStorage

ACCOUNT = "0xAbC0000000000000000000000000000000000001"
OTHER = "0x9999999999999999999999999999999999999999"
WEI_PER_ETH = 10**18


@pytest.fixture
def account():
    """Tracked wallet address (mixed case)."""
    return ACCOUNT


@pytest.fixture
def etherscan_record():
    """Sample Etherscan txlist entry sent from the tracked account."""
    return {
        "blockNumber": "19000000",
        "timeStamp": "1704067200",  # 2024-01-01T00:00:00Z
        "hash": "0xaaa1",
        "from": ACCOUNT.lower(),
        "to": "0x1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d7e8f9a0b",
        "value": "1000000000000000000",
        "gas": "21000",
        "isError": "0",
        "txreceipt_status": "1",
    }


@pytest.fixture(params=["memory", "sqlite"])
def storage(request):
    """Fresh storage for each backend."""
    if request.param == "memory":
        store = MemoryStorage()
    else:
        db = Database(":memory:")
        db.initialize()
        store = SQLiteStorage(db)
    yield store
    store.close()


def make_transaction(
    tx_hash: str,
    amount: str = "1",
    tx_type: TransactionType = TransactionType.SENT,
    timestamp: datetime = datetime(2024, 1, 15, tzinfo=timezone.utc),
    user_id: int = 1,
    category: str = "Other",
) -> Transaction:
    """Build a canonical transaction for tests."""
    return Transaction(
        hash=tx_hash,
        user_id=user_id,
        from_address=ACCOUNT if tx_type == TransactionType.SENT else OTHER,
        to_address=OTHER if tx_type == TransactionType.SENT else ACCOUNT,
        amount=amount,
        timestamp=timestamp,
        currency="ETH",
        status=TransactionStatus.CONFIRMED,
        type=tx_type,
        category=category,
    )


def make_budget(amount: str = "1", user_id: int = 1, month: int = 1) -> Budget:
    """Build a one-month budget in 2024."""
    return Budget(
        user_id=user_id,
        amount=amount,
        period_start=datetime(2024, month, 1, tzinfo=timezone.utc),
        period_end=datetime(2024, month, 28, 23, 59, 59, tzinfo=timezone.utc),
        currency="ETH",
    )


def raw_record(tx_hash: str, eth: str, sender: str = ACCOUNT, when: int = 1705305600):
    """Raw explorer record moving ``eth`` ETH (default time 2024-01-15)."""
    return {
        "hash": tx_hash,
        "from": sender,
        "to": OTHER if sender == ACCOUNT else ACCOUNT,
        "value": str(int(Decimal(eth) * WEI_PER_ETH)),
        "timeStamp": str(when),
        "isError": "0",
        "txreceipt_status": "1",
    }
