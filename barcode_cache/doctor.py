"""
System doctor: preflight checks for deps, configuration, storage and remote source.
Run: python -m barcode_cache.doctor   (or: barcode-cache doctor)
Exit: 0 all OK, 2 deps/config, 3 storage.
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

DEPENDENCIES = ["requests", "yaml", "fastapi", "uvicorn"]
DRIVER_MODULES = {"postgres": "psycopg2", "mysql": "mysql.connector"}


def _import_ok(module: str) -> bool:
    try:
        __import__(module)
    except ImportError:
        return False
    return True


def required_modules(cfg: dict) -> List[str]:
    """Core deps plus the driver for the configured dialect and zeroconf when discovery is on."""
    mods = list(DEPENDENCIES)
    driver = DRIVER_MODULES.get(str(cfg["db"]["type"]).lower())
    if driver:
        mods.append(driver)
    if cfg.get("discovery", {}).get("enabled"):
        mods.append("zeroconf")
    return mods


def check_dependencies(cfg: dict) -> bool:
    """Return True if all required packages import; else print pip install and return False."""
    mods = required_modules(cfg)
    missing = [m for m in mods if not _import_ok(m)]
    if not missing:
        print("[OK] dependencies  " + " ".join(mods))
        return True
    print("[FAIL] Missing packages: " + ", ".join(missing))
    print("  Fix: pip install -e '.[postgres,mysql,discovery]'")
    return False


def check_config(cfg: dict) -> bool:
    from .core.errors import UnsupportedDialect
    from .store.dialect import Dialect

    try:
        dialect = Dialect.parse(cfg["db"]["type"])
    except UnsupportedDialect as e:
        print(f"[FAIL] config  {e}")
        return False
    print(f"[OK] config  db.type={dialect.value}")
    return True


def check_storage(cfg: dict) -> bool:
    """Open the configured storage and run the (idempotent) create-table."""
    from .core.errors import BarcodeCacheError
    from .wiring import create_storage_backend

    try:
        backend = create_storage_backend(cfg)
    except BarcodeCacheError as e:
        print(f"[FAIL] storage  {e}")
        print("  Check db.* in config.yaml or BARCODE_DB_* environment variables.")
        return False
    try:
        print(f"[OK] storage  {backend.dialect.value} ready (table barcodes)")
    finally:
        backend.shutdown()
    return True


def check_remote(cfg: dict) -> None:
    """Informational: which remote source a server would use."""
    from .sources.defaults import resolve_source_name

    name = resolve_source_name(cfg.get("remote", {}))
    if name is None:
        print("[INFO] remote  none (cache misses are not backfilled)")
    elif name == "random":
        print("[INFO] remote  random (no API key set; answers are invented)")
    else:
        print(f"[INFO] remote  {name}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run all checks; return 0 OK, 2 deps/config, 3 storage."""
    ap = argparse.ArgumentParser(prog="barcode-cache doctor", description="Preflight system checks")
    ap.add_argument("--config", default=None, help="Path to a config.yaml (default: repo root or BARCODE_CACHE_CONFIG).")
    args = ap.parse_args(sys.argv[1:] if argv is None else argv)
    try:
        from .config import get_config

        print("Barcode-cache system doctor")
        print("-" * 40)
        cfg = get_config(args.config)
        if args.config:
            print(f"[INFO] config file  {args.config}")

        if not check_config(cfg):
            return 2
        if not check_dependencies(cfg):
            return 2
        if not check_storage(cfg):
            return 3
        check_remote(cfg)

        print("-" * 40)
        print("All checks passed.")
        return 0
    except Exception as e:
        print(f"[FAIL] doctor error: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
