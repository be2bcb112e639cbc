"""
Data sources for the barcode cache.

Local storage and remote services share one capability contract (DataSource);
remote sources are built from a config-driven registry and wrapped with
retry and circuit-breaker protection.
"""

from __future__ import annotations

from .alma import AlmaSource
from .base import BarcodeRecord, DataSource, SourceHealth, SourceStatus
from .random_source import RandomSource
from .registry import SourceRegistry
from .resilience import BreakerState, CircuitBreaker, CircuitOpenError, RetryConfig, resilient_call

__all__ = [
    "AlmaSource",
    "BarcodeRecord",
    "BreakerState",
    "CircuitBreaker",
    "CircuitOpenError",
    "DataSource",
    "RandomSource",
    "RetryConfig",
    "SourceHealth",
    "SourceRegistry",
    "SourceStatus",
    "resilient_call",
]
