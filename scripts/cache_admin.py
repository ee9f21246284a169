#!/usr/bin/env python3
"""
Inspect and maintain the consultation cache stored on disk.

Usage:
    python scripts/cache_admin.py stats
    python scripts/cache_admin.py cleanup
    python scripts/cache_admin.py export --output ./backup/cache.json
    python scripts/cache_admin.py import --input ./backup/cache.json
    python scripts/cache_admin.py clear --type draft

The database path defaults to CONSULT_CACHE_STORAGE_PATH; override it with --db.
"""

import argparse
import logging
import sys
from pathlib import Path

from consult_cache.config import Settings
from consult_cache.main import configure_logging, create_smart_cache
from consult_cache.models import EntryType

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and maintain the consultation cache"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the SQLite cache database (default: from settings)"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("stats", help="Print entry counts and storage size")
    commands.add_parser("cleanup", help="Remove expired entries")

    export_parser = commands.add_parser("export", help="Write a versioned snapshot")
    export_parser.add_argument("--output", type=str, required=True, help="Snapshot file to write")

    import_parser = commands.add_parser("import", help="Replace the cache with a snapshot")
    import_parser.add_argument("--input", type=str, required=True, help="Snapshot file to read")

    clear_parser = commands.add_parser("clear", help="Remove every entry of one type")
    clear_parser.add_argument(
        "--type",
        choices=[t.value for t in EntryType],
        required=True,
        help="Entry type to remove"
    )
    return parser


def main(argv=None) -> bool:
    args = build_parser().parse_args(argv)

    overrides = {"storage_backend": "sqlite"}
    if args.db:
        overrides["storage_path"] = args.db
    settings = Settings(**overrides)
    configure_logging(settings)

    cache = create_smart_cache(settings)

    if args.command == "stats":
        stats = cache.get_stats()
        print(f"Entries: {stats.total_entries}/{stats.max_entries}")
        print(f"By type: {stats.by_type}")
        print(f"By priority: {stats.by_priority}")
        print(f"Storage size: {stats.storage_size:,} chars")
        if stats.total_entries:
            print(f"Oldest entry: {stats.oldest_entry}  Newest entry: {stats.newest_entry}")
        return True

    if args.command == "cleanup":
        removed = cache.cleanup()
        print(f"Removed {removed} expired entries")
        return True

    if args.command == "export":
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(cache.export_data(), encoding="utf-8")
        print(f"Exported {len(cache.table)} entries to {output}")
        return True

    if args.command == "import":
        source = Path(args.input)
        if not source.exists():
            logger.error("Snapshot not found: %s", source)
            return False
        if not cache.import_data(source.read_text(encoding="utf-8")):
            print("Import failed, cache left unchanged")
            return False
        print(f"Imported {len(cache.table)} entries from {source}")
        return True

    if args.command == "clear":
        removed = cache.clear_by_type(args.type)
        print(f"Removed {removed} {args.type} entries")
        return True

    return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
