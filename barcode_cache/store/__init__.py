"""
Store: local SQL storage backends and the dialect shim they share.
No cache policy here; the coordinator decides when to read and write.
"""

from __future__ import annotations

from .backend import SQLStorageBackend, get_storage_backend
from .dialect import Dialect, DialectProfile, compile_profile

__all__ = [
    "Dialect",
    "DialectProfile",
    "SQLStorageBackend",
    "compile_profile",
    "get_storage_backend",
]
