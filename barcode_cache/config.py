"""
Load config from config.yaml with optional env overrides.
Single source of truth for storage dialect/connection, remote source, server and discovery settings.
"""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .store.dialect import Dialect

# Defaults if no YAML or env
_DEFAULTS = {
    "db": {
        "type": "sqlite",
        "name": "barcode_cache",
        "host": "localhost",
        "port": "",
        "user": "user",
        "password": "password",
        "path": "",
    },
    "remote": {
        "source": "auto",
        "api_key": "",
        "base_url": "https://api-na.hosted.exlibrisgroup.com/almaws/v1",
        "timeout_s": 15.0,
        "max_retries": 1,
        "breaker_threshold": 3,
        "breaker_cooldown_s": 60.0,
    },
    "server": {"host": "0.0.0.0", "port": 0, "wait": 0},
    "discovery": {
        "enabled": True,
        "name": "BarcodeServer",
        "type": "_http._tcp",
        "domain": "local.",
    },
    "log_level": "INFO",
}

DEFAULT_PORTS = {"mysql": "3306", "postgres": "5432"}

_ENV_MAP = {
    "BARCODE_DB_TYPE": ("db", "type"),
    "BARCODE_DB_NAME": ("db", "name"),
    "BARCODE_DB_HOST": ("db", "host"),
    "BARCODE_DB_PORT": ("db", "port"),
    "BARCODE_DB_USER": ("db", "user"),
    "BARCODE_DB_PASS": ("db", "password"),
    "BARCODE_DB_PATH": ("db", "path"),
    "BARCODE_API_KEY": ("remote", "api_key"),
    "BARCODE_REMOTE_SOURCE": ("remote", "source"),
}


def _config_yaml_path() -> Path:
    """BARCODE_CACHE_CONFIG if set, else config.yaml at repo root (parent of package dir)."""
    override = os.environ.get("BARCODE_CACHE_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml(path: Optional[Union[str, Path]] = None) -> dict:
    import yaml

    config_path = Path(path) if path else _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    for env_name, (section, key) in _ENV_MAP.items():
        value = os.environ.get(env_name)
        if value:
            overrides.setdefault(section, {})[key] = value
    level = os.environ.get("BARCODE_LOG_LEVEL")
    if level:
        overrides["log_level"] = level
    return overrides


def get_config(path: Optional[Union[str, Path]] = None) -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(copy.deepcopy(_DEFAULTS), _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    return merged


def apply_overrides(cfg: dict, overrides: Dict[str, Dict[str, Any]]) -> dict:
    """Layer non-empty CLI values on top of a config (None / "" are skipped)."""
    cleaned: Dict[str, Dict[str, Any]] = {}
    for section, values in overrides.items():
        kept = {k: v for k, v in values.items() if v is not None and v != ""}
        if kept:
            cleaned[section] = kept
    return _deep_merge(cfg, cleaned)


def storage_params(cfg: dict) -> Any:
    """
    Driver connection params for the configured dialect:
    - sqlite:   file path (db.path, else "<db.name>.sqlite.db")
    - postgres: libpq DSN string
    - mysql:    dict(host, port, user, password, database)
    """
    db = cfg["db"]
    dialect = Dialect.parse(db["type"])
    name = db.get("name") or "barcode_cache"
    if dialect is Dialect.SQLITE:
        return db.get("path") or f"{name}.sqlite.db"
    port = str(db.get("port") or DEFAULT_PORTS[dialect.value])
    if dialect is Dialect.POSTGRES:
        return (
            f"host={db['host']} port={port} user={db['user']} "
            f"password={db['password']} dbname={name} sslmode=disable"
        )
    return {
        "host": db["host"],
        "port": int(port),
        "user": db["user"],
        "password": db["password"],
        "database": name,
    }


def db_type(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config())["db"]["type"]).lower()


def log_level(cfg: Optional[dict] = None) -> str:
    return str((cfg or get_config()).get("log_level", "INFO")).upper()
