"""
Shared exception types for barcode_cache.

Two families: fatal configuration errors (startup aborts, or a storage call
broke its contract) and recoverable storage failures the coordinator absorbs.
"""

from __future__ import annotations


class BarcodeCacheError(Exception):
    """Base exception for barcode_cache; catch this for any package-raised error."""

    pass


class FatalConfigurationError(BarcodeCacheError):
    """Unrecoverable: bad wiring, unopenable storage, or a storage contract violation."""

    pass


class UnsupportedDialect(FatalConfigurationError, ValueError):
    """Dialect identifier outside the supported set."""

    pass


class LookupFailure(BarcodeCacheError):
    """Storage query failed during lookup. Not the same as 'not found'."""

    pass


class StoreFailure(BarcodeCacheError):
    """Storage execution failed during store."""

    pass


__all__ = [
    "BarcodeCacheError",
    "FatalConfigurationError",
    "LookupFailure",
    "StoreFailure",
    "UnsupportedDialect",
]
