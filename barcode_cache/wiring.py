"""
Startup wiring: turn a config dict into live components.

The backend and remote source are chosen here, once, and handed to the
CacheCoordinator explicitly. Failures while opening storage are fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .config import storage_params
from .coordinator import CacheCoordinator
from .sources.defaults import create_remote_source
from .sources.registry import SourceRegistry
from .store.backend import SQLStorageBackend, get_storage_backend

logger = logging.getLogger(__name__)


def create_storage_backend(cfg: Mapping[str, Any]) -> SQLStorageBackend:
    """Build and initialize the configured storage backend (FatalConfigurationError on failure)."""
    backend = get_storage_backend(cfg["db"]["type"])
    logger.info("Using database type '%s'", backend.dialect.value)
    backend.initialize(storage_params(dict(cfg)))
    return backend


def create_coordinator(
    cfg: Mapping[str, Any],
    registry: Optional[SourceRegistry] = None,
) -> CacheCoordinator:
    """Storage first (fatal if it cannot open), then the remote source."""
    local = create_storage_backend(cfg)
    try:
        remote = create_remote_source(cfg, registry=registry)
    except Exception:
        local.shutdown()
        raise
    return CacheCoordinator(local=local, remote=remote)


def shutdown_coordinator(coordinator: CacheCoordinator) -> None:
    """Shut down remote then local, logging each step."""
    for what, source in (("remote source", coordinator.remote), ("local storage", coordinator.local)):
        if source is None:
            continue
        logger.info("- Shutting down %s ...", what)
        source.shutdown()
        logger.info("  %s shut down.", what)
