"""
Default source registry configuration.

Registers the built-in remote sources and builds the configured one.
To add a new remote source, register it here and name it in config.yaml
(remote.source).
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .alma import ALMA_BASE_URL, HTTP_TIMEOUT_S, AlmaSource
from .base import DataSource
from .random_source import RandomSource
from .registry import SourceRegistry
from .resilience import CircuitBreaker, RetryConfig

logger = logging.getLogger(__name__)

SOURCE_AUTO = "auto"
SOURCE_NONE = "none"


def _alma_factory(remote_cfg: Mapping[str, Any]) -> DataSource:
    return AlmaSource(
        base_url=str(remote_cfg.get("base_url") or ALMA_BASE_URL),
        timeout_s=float(remote_cfg.get("timeout_s") or HTTP_TIMEOUT_S),
        retry_config=RetryConfig(max_retries=int(remote_cfg.get("max_retries") or 1)),
        circuit_breaker=CircuitBreaker(
            source_name="alma",
            failure_threshold=int(remote_cfg.get("breaker_threshold") or 3),
            cooldown_seconds=float(remote_cfg.get("breaker_cooldown_s") or 60.0),
        ),
    )


def _random_factory(remote_cfg: Mapping[str, Any]) -> DataSource:
    seed = remote_cfg.get("seed")
    return RandomSource(seed=int(seed) if seed is not None else None)


def create_default_registry() -> SourceRegistry:
    """Create a registry with all built-in remote sources."""
    registry = SourceRegistry()
    registry.register("alma", _alma_factory)
    registry.register("random", _random_factory)
    return registry


def resolve_source_name(remote_cfg: Mapping[str, Any]) -> Optional[str]:
    """'auto' means Alma when an API key is set, else random; 'none' disables the remote."""
    name = str(remote_cfg.get("source") or SOURCE_AUTO).strip().lower()
    if name == SOURCE_NONE:
        return None
    if name == SOURCE_AUTO:
        return "alma" if remote_cfg.get("api_key") else "random"
    return name


def create_remote_source(
    cfg: Mapping[str, Any],
    registry: Optional[SourceRegistry] = None,
) -> Optional[DataSource]:
    """Build and initialize the configured remote source (None when disabled)."""
    remote_cfg = cfg.get("remote", {})
    name = resolve_source_name(remote_cfg)
    if name is None:
        logger.info("No remote source configured; cache misses will not be backfilled")
        return None
    reg = registry or create_default_registry()
    source = reg.create(name, remote_cfg)
    source.initialize(remote_cfg.get("api_key") or None)
    logger.info("Using remote source '%s'", source.source_name)
    return source
