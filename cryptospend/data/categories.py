"""
Counterparty address classification.
"""

from typing import Callable, Optional

# Known counterparties; extend as new addresses are identified
KNOWN_ADDRESSES: dict[str, str] = {
    "0x1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d7e8f9a0b": "Exchange",
    "0x7f1531b6b88f880761c3c1ec478c11e8211994e2": "DeFi",
    "0x2f9c9eee7b368a6a90b93103ac1ce2c522f7d254": "NFTs",
}

AddressClassifier = Callable[[str], Optional[str]]


def classify_address(address: str) -> Optional[str]:
    """Look up the category of a known address, case-insensitively."""
    if not address:
        return None
    return KNOWN_ADDRESSES.get(address.lower())


def table_classifier(table: dict[str, str]) -> AddressClassifier:
    """
    Build a classifier from an address -> category mapping.

    Args:
        table: Mapping of addresses (any case) to category names

    Returns:
        Classifier function suitable for RecordNormalizer
    """
    lookup = {address.lower(): category for address, category in table.items()}

    def classify(address: str) -> Optional[str]:
        if not address:
            return None
        return lookup.get(address.lower())

    return classify
