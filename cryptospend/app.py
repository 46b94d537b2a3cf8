"""
Application wiring shared by the HTTP server and the CLI.
"""

import logging
from typing import Optional

from cryptospend.budget.alerts import OverageAlerter
from cryptospend.budget.evaluator import BudgetEvaluator
from cryptospend.config import AppConfig, ExplorerConfig
from cryptospend.data.categories import KNOWN_ADDRESSES, table_classifier
from cryptospend.data.sources import EtherscanSource, TransactionSource
from cryptospend.database.base import Storage, StorageFactory
from cryptospend.notifiers.base import Notifier, NotifierFactory
from cryptospend.sync import SyncOrchestrator, SyncResult

logger = logging.getLogger(__name__)


def create_explorer_source(explorer: ExplorerConfig) -> Optional[TransactionSource]:
    """Build the configured block explorer source, if any."""
    if explorer.provider != "etherscan":
        logger.warning(f"Unsupported explorer provider: {explorer.provider}")
        return None
    if not explorer.api_key:
        logger.info("No explorer API key configured, server-side fetch disabled")
        return None
    return EtherscanSource(
        api_key=explorer.api_key,
        network=explorer.network,
        max_records=explorer.max_records,
        timeout=explorer.timeout_seconds,
    )


class SpendTracker:
    """Spending tracker services bound to one storage backend."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        storage: Optional[Storage] = None,
        channels: Optional[list[Notifier]] = None,
        source: Optional[TransactionSource] = None,
    ):
        """
        Initialize tracker.

        Args:
            config: Application configuration (defaults if omitted)
            storage: Storage backend (created from config if omitted)
            channels: Alert delivery channels (created from config if omitted)
            source: Explorer source (created from config if omitted)
        """
        self.config = config or AppConfig()

        if storage is None:
            storage = StorageFactory.create(vars(self.config.database))
        self.storage = storage

        if channels is None:
            channels = [
                NotifierFactory.create(channel)
                for channel in self.config.notifications.channel_configs()
            ]
        self.channels = channels

        self.source = source or create_explorer_source(self.config.explorer)

        wallet = self.config.wallet
        self.evaluator = BudgetEvaluator(self.storage)
        self.alerter = OverageAlerter(self.storage, self.channels, self.evaluator)
        self.orchestrator = SyncOrchestrator(
            self.storage,
            alerter=self.alerter,
            classifier=table_classifier({**KNOWN_ADDRESSES, **self.config.categories}),
            currency=wallet.currency,
            decimals=wallet.decimals,
        )

    def sync_account(
        self, account: Optional[str] = None, user_id: Optional[int] = None
    ) -> SyncResult:
        """
        Sync an account from the configured explorer.

        Args:
            account: Wallet address (defaults to the configured wallet)
            user_id: Owner (defaults to the configured wallet user)

        Returns:
            SyncResult of the run
        """
        account = account or self.config.wallet.address
        if not account:
            return SyncResult(success=False, message="No wallet address configured")
        if self.source is None:
            return SyncResult(success=False, message="No block explorer configured")
        if user_id is None:
            user_id = self.config.wallet.user_id
        return self.orchestrator.sync(user_id, account, self.source)

    def close(self) -> None:
        self.storage.close()
