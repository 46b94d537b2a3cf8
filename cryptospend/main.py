"""
Main application entry point.
"""

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import uvicorn

from cryptospend.api.app import create_app
from cryptospend.app import SpendTracker
from cryptospend.config import AppConfig, load_config

logger = logging.getLogger(__name__)


def setup_logging(level: str, debug: bool = False) -> None:
    """Configure root logging once for the process."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_config(config_path: str) -> AppConfig:
    """Load the config file, falling back to defaults when it is absent."""
    if not Path(config_path).exists():
        logger.warning(f"Config file {config_path} not found, using defaults")
        return AppConfig()
    return load_config(config_path)


def main():
    """Serve the HTTP API."""
    parser = argparse.ArgumentParser(description="Crypto spending tracker API")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--host", help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, help="Bind port (overrides config)")

    args = parser.parse_args()

    config = build_config(args.config)
    setup_logging(config.advanced.log_level, args.debug)

    tracker = SpendTracker(config)
    app = create_app(tracker)

    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level="debug" if args.debug else config.advanced.log_level.lower(),
    )


if __name__ == "__main__":
    main()
