"""
Initialize the configured storage: open it and create the barcodes table.
Use: barcode-cache init [--db-type sqlite|mysql|postgres] [--db-name NAME] [--db-path PATH] ...
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from barcode_cache.cli.main import add_db_arguments, db_overrides


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="barcode-cache init",
        description="Create the barcodes table in the configured storage (safe to re-run).",
    )
    add_db_arguments(ap)
    args = ap.parse_args(argv)

    from barcode_cache.config import apply_overrides, get_config
    from barcode_cache.core.errors import FatalConfigurationError
    from barcode_cache.wiring import create_storage_backend

    cfg = apply_overrides(get_config(), db_overrides(args))
    try:
        backend = create_storage_backend(cfg)
    except FatalConfigurationError as e:
        print(f"init failed: {e}", file=sys.stderr)
        return 1
    try:
        where = getattr(backend, "db_path", None) or cfg["db"]["name"]
        print(f"Initialized {backend.dialect.value} storage: {where}")
    finally:
        backend.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
