"""Command-line entry point: build a table, feed it rows and print it."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dataflow_bridge.config import get_settings
from dataflow_bridge.errors import BridgeError
from dataflow_bridge.pool import Pool
from dataflow_bridge.table import Table
from dataflow_bridge.types import DTYPE_NAMES


def _load_rows(args: argparse.Namespace) -> list[dict]:
    if args.rows_file:
        text = args.rows_file.read_text()
    elif args.rows:
        text = args.rows
    else:
        return []
    rows = json.loads(text)
    if isinstance(rows, dict):
        rows = [rows]
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError("Rows must be a JSON object or a list of objects")
    return rows


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Create a dataflow table from a definition and print its contents"
    )
    arg_parser.add_argument(
        "definition",
        nargs="?",
        default=None,
        help="Table definition, e.g. \"table t (a: int64, b: str) index a limit 100\"",
    )
    arg_parser.add_argument(
        "-r", "--rows",
        type=str,
        help="JSON object or list of objects to insert",
    )
    arg_parser.add_argument(
        "-f", "--rows-file",
        type=Path,
        help="File containing the JSON rows to insert",
    )
    arg_parser.add_argument(
        "-n", "--num-rows",
        type=int,
        default=None,
        help="Number of rows to print",
    )
    arg_parser.add_argument(
        "--dtypes",
        action="store_true",
        help="List the available column type names and exit",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log engine activity to stderr",
    )

    args = arg_parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_settings().log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.dtypes:
        for name, dtype in DTYPE_NAMES.items():
            print(f"{name:<12} {dtype.label}")
        return 0

    if not args.definition:
        print("Error: A table definition is required", file=sys.stderr)
        return 1
    if args.rows_file and not args.rows_file.exists():
        print(f"Error: File not found: {args.rows_file}", file=sys.stderr)
        return 1

    try:
        rows = _load_rows(args)
        with Pool.create() as pool:
            with Table.from_definition(args.definition, pool=pool) as table:
                if rows:
                    table.update(rows)
                table.process()
                print(table.pretty_print(args.num_rows))
        return 0
    except (BridgeError, SyntaxError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
