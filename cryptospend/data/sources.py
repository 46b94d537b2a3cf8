"""
Sources of raw transaction records.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised when transaction history cannot be fetched."""

    pass


class TransactionSource(ABC):
    """Capability that yields raw transaction records for an account."""

    @abstractmethod
    def fetch(self, address: str) -> list[dict[str, Any]]:
        """
        Fetch raw records for an address, newest first.

        Args:
            address: Wallet address

        Returns:
            List of raw records (may be empty)

        Raises:
            SourceError: If the source cannot be reached or rejects the request
        """
        pass


class StaticTransactionSource(TransactionSource):
    """Records already collected by the client, e.g. from the wallet."""

    def __init__(self, records: Optional[list[dict[str, Any]]] = None):
        self.records = list(records or [])

    def fetch(self, address: str) -> list[dict[str, Any]]:
        return list(self.records)


class EtherscanSource(TransactionSource):
    """Fetches normal transactions from the Etherscan account API."""

    BASE_URL = "https://api.etherscan.io/v2/api"
    CHAIN_IDS = {
        "mainnet": 1,
        "sepolia": 11155111,
        "holesky": 17000,
    }
    NO_TRANSACTIONS = "No transactions found"

    def __init__(
        self,
        api_key: str,
        network: str = "mainnet",
        max_records: int = 100,
        base_url: Optional[str] = None,
        timeout: float = 30,
    ):
        """
        Initialize Etherscan source.

        Args:
            api_key: Etherscan API key
            network: Network name, one of CHAIN_IDS
            max_records: Batch size requested per sync
            base_url: Override for the API endpoint
            timeout: Request timeout in seconds
        """
        if network not in self.CHAIN_IDS:
            raise ValueError(f"Unknown network: {network}")
        self.api_key = api_key
        self.network = network
        self.max_records = max_records
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout

    def fetch(self, address: str) -> list[dict[str, Any]]:
        """Fetch the newest transactions for an address."""
        params = {
            "chainid": self.CHAIN_IDS[self.network],
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": 1,
            "offset": self.max_records,
            "sort": "desc",
            "apikey": self.api_key,
        }

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise SourceError(f"Etherscan request failed: {e}") from e
        except ValueError as e:
            raise SourceError(f"Etherscan returned invalid JSON: {e}") from e

        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> list[dict[str, Any]]:
        """Extract the result list from an Etherscan response."""
        status = str(data.get("status", ""))
        message = data.get("message", "")
        result = data.get("result")

        if status == "1" and isinstance(result, list):
            logger.info(f"Fetched {len(result)} transactions from Etherscan")
            return result

        if status == "0" and message == self.NO_TRANSACTIONS:
            return []

        raise SourceError(f"Etherscan error: {message} ({result})")
