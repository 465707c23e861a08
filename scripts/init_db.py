#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "mcp-server-python"))

from db.schema import initialize_database  # noqa: E402


def parse_args():
    parser = argparse.ArgumentParser(description="Create the ledger SQLite database and its schema.")
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite DB path (default: JOBLEDGER_DB or data/jobledger.db).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    path = initialize_database(args.db)
    print(f"Initialized database: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
