"""
Stable facade: error taxonomy only. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    BarcodeCacheError,
    FatalConfigurationError,
    LookupFailure,
    StoreFailure,
    UnsupportedDialect,
)

# Do not add exports without updating __all__.
__all__ = [
    "BarcodeCacheError",
    "FatalConfigurationError",
    "LookupFailure",
    "StoreFailure",
    "UnsupportedDialect",
]
