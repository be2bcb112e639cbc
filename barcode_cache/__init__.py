"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import barcode_cache; use barcode_cache.coordinator, barcode_cache.store, etc.
Does not import cli, api or discovery (optional dependencies live there).
"""

from __future__ import annotations

from ._version import __version__
from .coordinator import CacheCoordinator
from .core.errors import (
    BarcodeCacheError,
    FatalConfigurationError,
    LookupFailure,
    StoreFailure,
    UnsupportedDialect,
)
from .sources.base import BarcodeRecord, DataSource
from .store.dialect import Dialect, DialectProfile, compile_profile

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "BarcodeCacheError",
    "BarcodeRecord",
    "CacheCoordinator",
    "DataSource",
    "Dialect",
    "DialectProfile",
    "FatalConfigurationError",
    "LookupFailure",
    "StoreFailure",
    "UnsupportedDialect",
    "compile_profile",
]
