import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from mockbase.adapters.storage import generate_encryption_key
from mockbase.app_shell.config import ConfigError, configure_logging, load_settings
from mockbase.app_shell.context import create_mock_backend
from mockbase.services.backend import MockBackendService

logger = logging.getLogger("cli")


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def handle_users(backend: MockBackendService, args: argparse.Namespace) -> int:
    records = backend.get_users()
    if not records:
        print("No users.")
        return 0
    for rec in records:
        status = "confirmed" if rec.user.is_confirmed else "unconfirmed"
        print(f"{rec.email}\t{rec.user.id}\t{status}")
    return 0


def handle_tables(backend: MockBackendService, args: argparse.Namespace) -> int:
    names = backend.table_names()
    if not names:
        print("No tables.")
        return 0
    for name in names:
        print(f"{name}\t{len(backend.get_table_data(name))} rows")
    return 0


def handle_dump(backend: MockBackendService, args: argparse.Namespace) -> int:
    _print_json(backend.get_table_data(args.table))
    return 0


def handle_seed(backend: MockBackendService, args: argparse.Namespace) -> int:
    path = Path(args.file)
    try:
        rows = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Cannot read seed file %s: %s", path, e)
        return 1

    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        logger.error("Seed file must contain a JSON array of objects")
        return 1

    count = backend.seed_table(args.table, rows)
    print(f"Seeded {count} rows into '{args.table}'.")
    return 0


def handle_clear(backend: MockBackendService, args: argparse.Namespace) -> int:
    if not args.yes:
        logger.error("Refusing to clear all data without --yes")
        return 1
    backend.clear_all()
    print("Cleared all users, tables and the stored session.")
    return 0


def handle_session(backend: MockBackendService, args: argparse.Namespace) -> int:
    session = backend.get_current_session()
    if session is None:
        print("Signed out.")
        return 0
    _print_json(
        {
            "email": session.user.email,
            "user_id": session.user.id,
            "expires_at": session.expires_at,
        }
    )
    return 0


HANDLERS = {
    "users": handle_users,
    "tables": handle_tables,
    "dump": handle_dump,
    "seed": handle_seed,
    "clear": handle_clear,
    "session": handle_session,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockbase", description="Inspect and seed the offline mock backend"
    )
    parser.add_argument("--config", help="Path to mockbase.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("users", help="List registered users")
    subparsers.add_parser("tables", help="List tables and row counts")

    dump_parser = subparsers.add_parser("dump", help="Print a table as JSON")
    dump_parser.add_argument("table")

    seed_parser = subparsers.add_parser("seed", help="Replace a table with rows from a JSON file")
    seed_parser.add_argument("table")
    seed_parser.add_argument("file", help="JSON array of records")

    clear_parser = subparsers.add_parser("clear", help="Delete all stored data")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    subparsers.add_parser("session", help="Show the stored session, if still valid")
    subparsers.add_parser("keygen", help="Print a new encryption_key for the config file")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "keygen":
        print(generate_encryption_key())
        return 0

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"CRITICAL: {e}", file=sys.stderr)
        return 2

    configure_logging(settings)
    backend = create_mock_backend(settings)
    return HANDLERS[args.command](backend, args)


if __name__ == "__main__":
    sys.exit(main())
