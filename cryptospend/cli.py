"""
CLI commands for the spending tracker.
"""

import argparse
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from cryptospend.app import SpendTracker
from cryptospend.budget.evaluator import days_remaining
from cryptospend.data.normalizer import format_amount
from cryptospend.config import AppConfig
from cryptospend.database.connection import Database
from cryptospend.database.models import Budget, ensure_utc
from cryptospend.main import build_config, setup_logging


def set_budget(
    tracker: SpendTracker,
    user_id: int,
    amount: str,
    start: datetime,
    end: datetime,
    currency: str = "ETH",
) -> Budget:
    """Create or replace the user's budget."""
    if ensure_utc(end) <= ensure_utc(start):
        raise ValueError("Budget end must be after its start")
    try:
        cap = Decimal(amount)
    except InvalidOperation:
        raise ValueError(f"Invalid budget amount: {amount}")
    if not cap.is_finite() or cap <= 0:
        raise ValueError("Budget amount must be positive")
    budget = Budget(
        user_id=user_id,
        amount=format_amount(cap),
        period_start=ensure_utc(start),
        period_end=ensure_utc(end),
        currency=currency,
    )
    return tracker.storage.save_budget(budget)


def budget_summary(tracker: SpendTracker, user_id: int) -> Optional[dict]:
    """Budget with its current usage, or None."""
    budget = tracker.storage.get_budget(user_id)
    if budget is None:
        return None
    usage = tracker.evaluator.evaluate_budget(budget)
    return {
        "budget": budget,
        "used": format_amount(usage.used),
        "total": format_amount(usage.total),
        "percentage": usage.percentage,
        "remaining": format_amount(usage.remaining),
        "days_remaining": days_remaining(budget),
    }


def migrate(config: AppConfig) -> str:
    """Create the SQLite schema for the configured database."""
    if config.database.backend != "sqlite":
        return f"Nothing to migrate for the {config.database.backend} backend"
    db = Database(config.database.path)
    try:
        db.initialize()
    finally:
        db.close()
    return f"Migrations applied to {config.database.path}"


def main(argv: Optional[list[str]] = None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Crypto spending tracker CLI")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Sync
    sync_parser = subparsers.add_parser("sync", help="Sync wallet from explorer")
    sync_parser.add_argument("--address", help="Wallet address (default: config)")
    sync_parser.add_argument("--user", type=int, help="User ID (default: config)")

    # Budget commands
    budget_parser = subparsers.add_parser("budget", help="Budget management")
    budget_subparsers = budget_parser.add_subparsers(dest="action")

    set_budget_parser = budget_subparsers.add_parser("set", help="Set budget")
    set_budget_parser.add_argument("--user", type=int, default=1, help="User ID")
    set_budget_parser.add_argument("--amount", required=True, help="Budget cap")
    set_budget_parser.add_argument(
        "--start", required=True, type=datetime.fromisoformat, help="ISO start date"
    )
    set_budget_parser.add_argument(
        "--end", required=True, type=datetime.fromisoformat, help="ISO end date"
    )
    set_budget_parser.add_argument("--currency", default="ETH", help="Currency")

    show_budget_parser = budget_subparsers.add_parser("show", help="Show budget")
    show_budget_parser.add_argument("--user", type=int, default=1, help="User ID")

    # Transaction commands
    tx_parser = subparsers.add_parser("transactions", help="Transactions")
    tx_subparsers = tx_parser.add_subparsers(dest="action")
    list_tx_parser = tx_subparsers.add_parser("list", help="List transactions")
    list_tx_parser.add_argument("--user", type=int, default=1, help="User ID")

    # Notification commands
    notif_parser = subparsers.add_parser("notifications", help="Notifications")
    notif_subparsers = notif_parser.add_subparsers(dest="action")
    list_notif_parser = notif_subparsers.add_parser("list", help="List notifications")
    list_notif_parser.add_argument("--user", type=int, default=1, help="User ID")
    read_notif_parser = notif_subparsers.add_parser("read", help="Mark as read")
    read_notif_parser.add_argument("--id", type=int, required=True, help="Notification ID")

    # DB commands
    db_parser = subparsers.add_parser("db", help="Database management")
    db_subparsers = db_parser.add_subparsers(dest="action")
    db_subparsers.add_parser("migrate", help="Create tables")

    args = parser.parse_args(argv)

    config = build_config(args.config)
    setup_logging(config.advanced.log_level, args.debug)

    if args.command == "db":
        if args.action == "migrate":
            print(migrate(config))
        return

    tracker = SpendTracker(config)
    try:
        if args.command == "sync":
            result = tracker.sync_account(account=args.address, user_id=args.user)
            print(result.message)
            if result.success:
                print(f"Fetched: {result.fetched}, new: {result.added_count}")

        elif args.command == "budget":
            if args.action == "set":
                try:
                    budget = set_budget(
                        tracker, args.user, args.amount, args.start, args.end,
                        args.currency,
                    )
                except ValueError as e:
                    parser.exit(1, f"Error: {e}\n")
                print(f"Budget {budget.id} set: {budget.amount} {budget.currency}")
            elif args.action == "show":
                summary = budget_summary(tracker, args.user)
                if summary is None:
                    print("No budget set")
                else:
                    budget = summary["budget"]
                    print(
                        f"{summary['used']} of {summary['total']} {budget.currency} "
                        f"spent ({summary['percentage']}%), {summary['remaining']} "
                        f"remaining, {summary['days_remaining']} days left"
                    )

        elif args.command == "transactions":
            if args.action == "list":
                for tx in tracker.storage.list_transactions(args.user):
                    print(
                        f"{tx.timestamp:%Y-%m-%d %H:%M} {tx.type.value:<8} "
                        f"{tx.amount} {tx.currency} [{tx.category}] {tx.hash}"
                    )

        elif args.command == "notifications":
            if args.action == "list":
                for n in tracker.storage.list_notifications(args.user):
                    marker = " " if n.read else "*"
                    print(f"{marker} {n.id}: {n.message} ({n.timestamp:%Y-%m-%d %H:%M})")
            elif args.action == "read":
                if tracker.storage.mark_notification_read(args.id) is None:
                    print(f"Notification {args.id} not found")
                else:
                    print(f"Notification {args.id} marked as read")
    finally:
        tracker.close()


if __name__ == "__main__":
    main()
