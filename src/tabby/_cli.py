"""Tabby CLI: tabby list / tabby show / tabby clear.

Inspects snapshots saved by stores that use a storage directory.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabby.state.persistence import PersistenceAdapter


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the tabby CLI."""
    parser = argparse.ArgumentParser(
        prog="tabby",
        description="Inspect persisted tabby store snapshots.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--root", default=".", help="Directory containing tabby.yaml / tabby.toml",
    )
    parser.add_argument(
        "--storage-dir", default=None, help="Snapshot directory (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # tabby list
    subparsers.add_parser("list", help="List slots that hold a snapshot")

    # tabby show
    show_parser = subparsers.add_parser("show", help="Print a slot's snapshot")
    show_parser.add_argument("slot", help="Storage slot name")
    show_parser.add_argument(
        "--raw", action="store_true", help="Print the stored text without reformatting",
    )

    # tabby clear
    clear_parser = subparsers.add_parser("clear", help="Delete a slot's snapshot")
    clear_parser.add_argument("slot", help="Storage slot name")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from tabby import __version__

    return __version__


def _adapter(args: argparse.Namespace) -> PersistenceAdapter:
    from tabby.config_loader import load_config
    from tabby.state.persistence import FileStorage, PersistenceAdapter

    if args.storage_dir is not None:
        storage_dir = Path(args.storage_dir)
    else:
        storage_dir = load_config(args.root).storage_dir
    if storage_dir is None:
        print("  No storage_dir configured; pass --storage-dir", file=sys.stderr)
        sys.exit(1)
    return PersistenceAdapter(FileStorage(storage_dir))


def _require_snapshot(adapter: PersistenceAdapter, slot: str) -> str:
    text = adapter.load_text(slot)
    if not text:
        print(f"  No snapshot in slot {slot!r}", file=sys.stderr)
        sys.exit(1)
    return text


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    from tabby._errors import TabbyError

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        adapter = _adapter(args)
        if args.command == "list":
            for slot in adapter.slots():
                print(slot)
        elif args.command == "show":
            text = _require_snapshot(adapter, args.slot)
            if args.raw:
                print(text)
            else:
                print(json.dumps(adapter.load(args.slot), indent=2, ensure_ascii=False))
        elif args.command == "clear":
            _require_snapshot(adapter, args.slot)
            adapter.clear(args.slot)
    except TabbyError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
