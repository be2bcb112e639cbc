"""
Top-level CLI dispatcher: barcode-cache <command> [args...].
All commands dispatch to package CLI modules or doctor.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

COMMANDS = {
    "serve": "Run the cache server (HTTP API + zeroconf advertisement)",
    "lookup": "Query a running server for a barcode",
    "init": "Create the cache table in the configured storage",
    "doctor": "Preflight system checks",
}


def setup_logging(level: str = "INFO") -> None:
    """Root logging for CLI processes; library modules only create loggers."""
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def add_db_arguments(ap: argparse.ArgumentParser) -> None:
    """Storage flags shared by serve and init. Empty means: use config."""
    ap.add_argument("--db-type", default=None, help="Database type, sqlite|mysql|postgres.")
    ap.add_argument("--db-name", default=None, help="Database name.")
    ap.add_argument("--db-user", default=None, help="Database user name.")
    ap.add_argument("--db-pass", default=None, help="Database user password.")
    ap.add_argument("--db-host", default=None, help="Database host.")
    ap.add_argument("--db-port", default=None, help="Database port.")
    ap.add_argument("--db-path", default=None, help="SQLite file path (default: <db-name>.sqlite.db).")


def db_overrides(args: argparse.Namespace) -> dict:
    return {
        "db": {
            "type": args.db_type,
            "name": args.db_name,
            "user": args.db_user,
            "password": args.db_pass,
            "host": args.db_host,
            "port": args.db_port,
            "path": args.db_path,
        }
    }


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="barcode-cache",
        description="Local network cache for barcode lookups",
    )
    subparsers = parser.add_subparsers(dest="command", help="command")
    for name, help_text in COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    args, rest = parser.parse_known_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    cmd = args.command

    if cmd == "serve":
        from barcode_cache.cli import serve as mod

        return mod.main(rest)
    if cmd == "lookup":
        from barcode_cache.cli import lookup as mod

        return mod.main(rest)
    if cmd == "init":
        from barcode_cache.cli import init_db as mod

        return mod.main(rest)
    if cmd == "doctor":
        from barcode_cache.doctor import main as doctor_main

        return doctor_main(rest)

    parser.print_help()
    return 0
