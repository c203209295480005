from __future__ import annotations

import argparse
import sqlite3
from typing import Any

from app.config import load_config
from conversation.store_factory import create_conversation_manager
from expenses.repository import ExpenseRepository
from io_utils.json_writer import dump_json, load_json_list, write_json
from stores.normalizer import StoreNormalizer, round_amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Expense bot store analytics and maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize_parser = subparsers.add_parser("normalize-store", help="Normalize one or more store names")
    normalize_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    normalize_parser.add_argument("--name", action="append", required=True, help="Raw store name (repeatable)")

    top_parser = subparsers.add_parser("top-stores", help="Rank stores by total after normalization")
    top_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    _add_transaction_source(top_parser)
    top_parser.add_argument("--limit", type=int, default=None)
    top_parser.add_argument("--store-field", default=None)
    top_parser.add_argument("--amount-field", default=None)
    top_parser.add_argument("--output", default=None, help="Optional output JSON path")

    group_parser = subparsers.add_parser("group-stores", help="Group transactions by normalized store")
    group_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    _add_transaction_source(group_parser)
    group_parser.add_argument("--store-field", default=None)
    group_parser.add_argument("--amount-field", default=None)
    group_parser.add_argument("--output", default=None, help="Optional output JSON path")

    detect_parser = subparsers.add_parser("detect-store-groups", help="Find probable duplicate store names")
    detect_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    detect_parser.add_argument("--input", required=True, help="JSON array of raw store names")
    detect_parser.add_argument("--threshold", type=float, default=None)
    detect_parser.add_argument("--output", default=None, help="Optional output JSON path")

    cleanup_parser = subparsers.add_parser("cleanup-conversations", help="Remove expired conversation states")
    cleanup_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")

    return parser


def _add_transaction_source(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="JSON array of transactions")
    source.add_argument("--user-id", help="Read recorded expenses for this user from the expenses database")
    parser.add_argument("--project-id", default=None, help="Limit recorded expenses to one project")


def _load_transactions(args: argparse.Namespace, config: dict[str, Any]) -> list[Any]:
    if args.input:
        return load_json_list(args.input, key="transactions")
    sqlite_path = str(config.get("expenses", {}).get("sqlite_path", "data/expenses/expenses.db"))
    repository = ExpenseRepository(sqlite_path=sqlite_path)
    return [expense.to_dict() for expense in repository.list_expenses(args.user_id, project_id=args.project_id)]


def _field_overrides(args: argparse.Namespace) -> dict[str, str]:
    fields: dict[str, str] = {}
    if args.store_field:
        fields["store_field"] = args.store_field
    if args.amount_field:
        fields["amount_field"] = args.amount_field
    return fields


def _emit(payload: Any, output: str | None, config: dict[str, Any]) -> None:
    pretty = bool(config.get("output", {}).get("pretty_json", True))
    if output:
        path = write_json(output, payload, pretty=pretty)
        print(f"saved: {path}")
    else:
        print(dump_json(payload, pretty=pretty))


def cmd_normalize_store(args: argparse.Namespace, config: dict[str, Any]) -> int:
    normalizer = StoreNormalizer.from_config(config)
    for name in args.name:
        print(f"{name} -> {normalizer.normalize(name)}")
    return 0


def cmd_top_stores(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        transactions = _load_transactions(args, config)
    except (OSError, ValueError, sqlite3.Error) as exc:
        print(f"top-stores failed: {exc}")
        return 1
    normalizer = StoreNormalizer.from_config(config)
    limit = args.limit
    if limit is None:
        limit = int(config.get("store_normalizer", {}).get("top_stores_limit", 5))
    stores = normalizer.top_stores(transactions, limit, **_field_overrides(args))
    _emit(stores, args.output, config)
    return 0


def cmd_group_stores(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        transactions = _load_transactions(args, config)
    except (OSError, ValueError, sqlite3.Error) as exc:
        print(f"group-stores failed: {exc}")
        return 1
    normalizer = StoreNormalizer.from_config(config)
    groups = normalizer.group(transactions, **_field_overrides(args))
    payload = {
        str(name): {
            "canonicalName": group.canonical_name,
            "memberNames": sorted(str(member) for member in group.member_names),
            "totalAmount": round_amount(group.total_amount),
            "visitCount": group.visit_count,
        }
        for name, group in groups.items()
    }
    _emit(payload, args.output, config)
    return 0


def cmd_detect_store_groups(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        names = load_json_list(args.input, key="names")
    except (OSError, ValueError) as exc:
        print(f"detect-store-groups failed: {exc}")
        return 1
    normalizer = StoreNormalizer.from_config(config)
    groups = normalizer.detect_groups(names, args.threshold)
    _emit(groups, args.output, config)
    return 0


def cmd_cleanup_conversations(config: dict[str, Any]) -> int:
    try:
        removed = create_conversation_manager(config).cleanup_expired_conversations()
    except Exception as exc:  # noqa: BLE001
        print(f"cleanup failed: {exc}")
        return 1
    print(f"conversation-cleanup removed={removed}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)

    if args.command == "normalize-store":
        return cmd_normalize_store(args, config)
    if args.command == "top-stores":
        return cmd_top_stores(args, config)
    if args.command == "group-stores":
        return cmd_group_stores(args, config)
    if args.command == "detect-store-groups":
        return cmd_detect_store_groups(args, config)
    if args.command == "cleanup-conversations":
        return cmd_cleanup_conversations(config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
