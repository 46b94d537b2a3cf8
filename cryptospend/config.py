"""
Configuration loading and validation.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
STORAGE_BACKENDS = {"sqlite", "memory"}
NETWORKS = {"mainnet", "sepolia", "holesky"}


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    backend: str = "sqlite"
    path: str = "data/cryptospend.db"


@dataclass
class WalletConfig:
    """Tracked wallet configuration."""

    address: str = ""
    user_id: int = 1
    currency: str = "ETH"
    decimals: int = 18


@dataclass
class ExplorerConfig:
    """Block explorer configuration."""

    provider: str = "etherscan"
    api_key: str = ""
    network: str = "mainnet"
    max_records: int = 100
    timeout_seconds: int = 30


@dataclass
class DiscordNotificationConfig:
    """Discord notification settings."""

    enabled: bool = False
    webhook_url: str = ""
    mention: bool = False


@dataclass
class EmailNotificationConfig:
    """Email notification settings."""

    enabled: bool = False
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_address: str = ""
    to_addresses: list[str] = field(default_factory=list)


@dataclass
class NotificationsConfig:
    """Notifications configuration."""

    discord: DiscordNotificationConfig = field(
        default_factory=DiscordNotificationConfig
    )
    email: EmailNotificationConfig = field(default_factory=EmailNotificationConfig)

    def channel_configs(self) -> list[dict[str, Any]]:
        """Enabled channels as NotifierFactory configuration dicts."""
        channels = []
        if self.email.enabled:
            channels.append({"type": "email", **vars(self.email)})
        if self.discord.enabled:
            channels.append({"type": "discord", **vars(self.discord)})
        return channels


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    explorer: ExplorerConfig = field(default_factory=ExplorerConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    # Extra address -> category entries for the classifier
    categories: dict[str, str] = field(default_factory=dict)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    db_config = config_dict.get("database") or {}
    backend = db_config.get("backend", "sqlite")
    if backend not in STORAGE_BACKENDS:
        raise ConfigValidationError(f"Unknown storage backend: {backend}")

    if backend == "sqlite":
        db_path = db_config.get("path", DatabaseConfig.path)
        if not db_path:
            raise ConfigValidationError("Database path is required")

        parent = Path(db_path).parent
        if parent.exists() and not os.access(parent, os.W_OK):
            raise ConfigValidationError(f"Database path not writable: {parent}")

    wallet = config_dict.get("wallet") or {}
    address = wallet.get("address")
    if address and not ADDRESS_PATTERN.match(address):
        raise ConfigValidationError(f"Invalid wallet address: {address}")

    explorer = config_dict.get("explorer") or {}
    network = explorer.get("network", "mainnet")
    if network not in NETWORKS:
        raise ConfigValidationError(f"Unknown network: {network}")

    advanced = config_dict.get("advanced") or {}
    log_level = str(advanced.get("log_level", "INFO")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigValidationError(f"Invalid log level: {log_level}")


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    config_dict = _substitute_env_vars(raw_config)

    _validate_config(config_dict)

    try:
        notif_dict = config_dict.get("notifications") or {}
        notifications = NotificationsConfig(
            discord=DiscordNotificationConfig(**(notif_dict.get("discord") or {})),
            email=EmailNotificationConfig(**(notif_dict.get("email") or {})),
        )

        return AppConfig(
            database=DatabaseConfig(**(config_dict.get("database") or {})),
            wallet=WalletConfig(**(config_dict.get("wallet") or {})),
            explorer=ExplorerConfig(**(config_dict.get("explorer") or {})),
            notifications=notifications,
            server=ServerConfig(**(config_dict.get("server") or {})),
            advanced=AdvancedConfig(**(config_dict.get("advanced") or {})),
            categories=dict(config_dict.get("categories") or {}),
        )
    except TypeError as e:
        # Unknown keys in a section
        raise ConfigValidationError(f"Invalid configuration: {e}") from e
