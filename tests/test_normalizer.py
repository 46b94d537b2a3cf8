"""
Record normalization tests.
Tests for turning explorer/wallet records into transactions.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cryptospend.data.categories import classify_address, table_classifier
from cryptospend.data.normalizer import RecordNormalizer, format_amount
from cryptospend.database.models import TransactionStatus, TransactionType

from conftest import ACCOUNT, OTHER


@pytest.fixture
def normalizer():
    """Normalizer for the tracked test account."""
    return RecordNormalizer(ACCOUNT)


class TestFormatAmount:
    """Test decimal rendering."""

    def test_plain_string(self):
        """Should drop trailing zeros and avoid exponents."""
        assert format_amount(Decimal("1.500")) == "1.5"
        assert format_amount(Decimal("1E+2")) == "100"
        assert format_amount(Decimal("0.000000000000000001")) == "0.000000000000000001"

    def test_zero(self):
        """Should render zero as "0"."""
        assert format_amount(Decimal("0.000")) == "0"


class TestClassification:
    """Test counterparty classification."""

    def test_known_address_any_case(self):
        """Should match known addresses case-insensitively."""
        assert classify_address("0x1A2B3C4D5E6F7A8B9C0D1E2F3A4B5C6D7E8F9A0B") == "Exchange"

    def test_unknown_address(self):
        """Should return None for unknown or empty addresses."""
        assert classify_address(OTHER) is None
        assert classify_address("") is None

    def test_table_classifier(self):
        """Should classify from a custom mapping."""
        classify = table_classifier({OTHER.upper(): "Payroll"})
        assert classify(OTHER) == "Payroll"
        assert classify(ACCOUNT) is None


class TestRecordNormalizer:
    """Test RecordNormalizer."""

    def test_etherscan_record(self, normalizer, etherscan_record):
        """Should convert wei to ETH and classify the recipient."""
        tx = normalizer.normalize(etherscan_record)

        assert tx.hash == "0xaaa1"
        assert tx.amount == "1"
        assert tx.type == TransactionType.SENT
        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.category == "Exchange"
        assert tx.currency == "ETH"
        assert tx.user_id == 1
        assert tx.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_type_is_case_insensitive(self, etherscan_record):
        """Should detect sends regardless of address casing."""
        normalizer = RecordNormalizer(ACCOUNT.upper())
        etherscan_record["from"] = ACCOUNT.lower()
        assert normalizer.normalize(etherscan_record).type == TransactionType.SENT

    def test_received(self, normalizer):
        """Should mark incoming records as received and classify the sender."""
        tx = normalizer.normalize(
            {
                "hash": "0xin",
                "from": "0x7F1531B6B88F880761C3C1EC478C11E8211994E2",
                "to": ACCOUNT,
                "value": "500000000000000000",
                "timeStamp": "1704067200",
            }
        )
        assert tx.type == TransactionType.RECEIVED
        assert tx.amount == "0.5"
        assert tx.category == "DeFi"

    def test_default_category(self, normalizer):
        """Should fall back to the default category."""
        tx = normalizer.normalize({"hash": "0x1", "from": ACCOUNT, "to": OTHER, "value": "1"})
        assert tx.category == "Other"

    def test_custom_classifier(self):
        """Should use the injected classifier."""
        normalizer = RecordNormalizer(ACCOUNT, classifier=lambda address: "Rent")
        tx = normalizer.normalize({"hash": "0x1", "from": ACCOUNT, "to": OTHER, "value": "1"})
        assert tx.category == "Rent"

    def test_missing_hash_dropped(self, normalizer, etherscan_record):
        """Should drop records without a hash."""
        del etherscan_record["hash"]
        assert normalizer.normalize(etherscan_record) is None

    def test_non_mapping_dropped(self, normalizer):
        """Should drop records that are not mappings."""
        assert normalizer.normalize("0xabc") is None

    def test_malformed_value(self, normalizer, etherscan_record):
        """Should use 0 for unparseable values."""
        etherscan_record["value"] = "lots"
        assert normalizer.normalize(etherscan_record).amount == "0"

    def test_negative_value(self, normalizer, etherscan_record):
        """Should use 0 for negative values."""
        etherscan_record["value"] = "-5"
        assert normalizer.normalize(etherscan_record).amount == "0"

    def test_hex_value(self, normalizer, etherscan_record):
        """Should accept hex wei values."""
        etherscan_record["value"] = hex(2 * 10**18)
        assert normalizer.normalize(etherscan_record).amount == "2"

    def test_display_amount(self, normalizer):
        """Should take amount as already in display units."""
        tx = normalizer.normalize(
            {"hash": "0x1", "from": ACCOUNT, "to": OTHER, "amount": "0.75"}
        )
        assert tx.amount == "0.75"

    def test_missing_fields_defaulted(self, normalizer):
        """Should default missing to, value and timestamp."""
        before = datetime.now(timezone.utc)
        tx = normalizer.normalize({"hash": "0x1", "from": ACCOUNT})

        assert tx.to_address == ""
        assert tx.amount == "0"
        assert tx.status == TransactionStatus.PENDING
        assert tx.timestamp >= before

    def test_iso_timestamp(self, normalizer):
        """Should parse ISO timestamps with a Z suffix."""
        tx = normalizer.normalize(
            {"hash": "0x1", "from": ACCOUNT, "timestamp": "2024-02-03T04:05:06Z"}
        )
        assert tx.timestamp == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

    def test_millisecond_timestamp(self, normalizer):
        """Should detect millisecond unix timestamps."""
        tx = normalizer.normalize(
            {"hash": "0x1", "from": ACCOUNT, "timestamp": 1704067200000}
        )
        assert tx.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "fields, expected",
        [
            ({"status": "completed"}, TransactionStatus.CONFIRMED),
            ({"status": "failed"}, TransactionStatus.FAILED),
            ({"status": "pending"}, TransactionStatus.PENDING),
            ({"isError": "1", "txreceipt_status": "1"}, TransactionStatus.FAILED),
            ({"isError": "0", "txreceipt_status": "0"}, TransactionStatus.FAILED),
            ({"isError": "0", "txreceipt_status": ""}, TransactionStatus.CONFIRMED),
            ({}, TransactionStatus.PENDING),
        ],
    )
    def test_status_mapping(self, normalizer, fields, expected):
        """Should map explicit statuses and Etherscan flags."""
        record = {"hash": "0x1", "from": ACCOUNT, "value": "1", **fields}
        assert normalizer.normalize(record).status == expected

    def test_normalize_batch_skips_dropped(self, normalizer, etherscan_record):
        """Should keep order and skip records without hashes."""
        second = dict(etherscan_record, hash="0xaaa2")
        txs = normalizer.normalize_batch([etherscan_record, {"from": ACCOUNT}, second])
        assert [tx.hash for tx in txs] == ["0xaaa1", "0xaaa2"]
