"""
Source registry: central catalog of available remote data sources.

Sources register a factory under a name. Configuration picks the name; the
registry builds and initializes the instance that is then handed explicitly
to the CacheCoordinator.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Union

from ..core.errors import FatalConfigurationError
from .base import DataSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[Mapping[str, Any]], DataSource]

# Factories may also be DataSource classes, instantiated with no arguments.


class SourceRegistry:
    """
    Mapping of source names to factories or ready-made instances.

    Usage:
        registry = SourceRegistry()
        registry.register("alma", lambda cfg: AlmaSource(timeout_s=cfg["timeout_s"]))
        registry.register("stub", FakeRemoteSource())

        source = registry.create("alma", {"timeout_s": 5})
    """

    def __init__(self) -> None:
        self._factories: Dict[str, Union[SourceFactory, DataSource]] = {}

    def register(self, name: str, factory: Union[SourceFactory, DataSource]) -> None:
        """Register a source factory (called with the remote config) or an instance."""
        self._factories[name.lower()] = factory
        logger.debug("Registered remote source: %s", name)

    def create(self, name: str, remote_cfg: Mapping[str, Any] | None = None) -> DataSource:
        """Build the named source. Registered instances are returned as-is."""
        factory = self._factories.get(name.lower())
        if factory is None:
            raise FatalConfigurationError(
                f"Unknown remote source '{name}'. Available: {self.names}"
            )
        if isinstance(factory, type):
            return factory()
        if isinstance(factory, DataSource):
            return factory
        return factory(remote_cfg or {})

    @property
    def names(self) -> List[str]:
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._factories
