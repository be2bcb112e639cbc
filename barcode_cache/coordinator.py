"""
Cache coordinator: answer a barcode from local storage, else from the remote
source, writing remote answers through to local storage.

Per request:
1. local lookup -> hit: done, the remote is never contacted
2. miss (or local failure, or no local) -> remote lookup, at most once
3. remote hit -> best-effort local store, record returned
4. otherwise -> None

Callers only ever see a record or None. Failures are logged, and a broken
cache is logged differently from a plain miss. No per-request state and no
locks: concurrent requests for the same missing barcode may each reach the
remote; the conditional insert makes the duplicate store harmless.
"""

from __future__ import annotations

import logging
from typing import Optional

from .core.errors import LookupFailure
from .sources.base import BarcodeRecord, DataSource

logger = logging.getLogger(__name__)


class CacheCoordinator:
    """Local-first lookup with remote fallback and write-through."""

    def __init__(
        self,
        local: Optional[DataSource] = None,
        remote: Optional[DataSource] = None,
    ) -> None:
        self._local = local
        self._remote = remote

    @property
    def local(self) -> Optional[DataSource]:
        return self._local

    @property
    def remote(self) -> Optional[DataSource]:
        return self._remote

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        if not barcode:
            logger.warning("Ignoring lookup with empty barcode")
            return None

        if self._local is not None:
            result = self._lookup_local(barcode)
            if result is not None:
                logger.info("Cache hit for barcode %s", barcode)
                return result
        else:
            logger.warning("No local storage configured; barcode %s goes straight to remote", barcode)

        if self._remote is None:
            logger.info("No remote source defined; barcode %s not found", barcode)
            return None

        result = self._lookup_remote(barcode)
        if result is None:
            logger.info("No result was located for barcode %s", barcode)
            return None

        self._write_through(result)
        return result

    def _lookup_local(self, barcode: str) -> Optional[BarcodeRecord]:
        try:
            result = self._local.lookup(barcode)  # type: ignore[union-attr]
        except LookupFailure as exc:
            logger.error("Local cache broken, falling back to remote for %s: %s", barcode, exc)
            return None
        except Exception as exc:
            logger.error(
                "Local source %s unusable for barcode %s, falling back to remote: %s: %s",
                self._local.source_name, barcode, type(exc).__name__, exc,  # type: ignore[union-attr]
            )
            return None
        if result is None:
            logger.info("Cache miss for barcode %s; attempting remote ...", barcode)
        return result

    def _lookup_remote(self, barcode: str) -> Optional[BarcodeRecord]:
        name = self._remote.source_name  # type: ignore[union-attr]
        try:
            return self._remote.lookup(barcode)  # type: ignore[union-attr]
        except Exception as exc:
            logger.warning(
                "Remote source %s raised for barcode %s: %s: %s",
                name, barcode, type(exc).__name__, exc,
            )
            return None

    def _write_through(self, record: BarcodeRecord) -> None:
        if self._local is None:
            return
        try:
            self._local.store(record)
        except Exception as exc:
            logger.error(
                "Write-through failed for barcode %s (record still returned): %s: %s",
                record.barcode, type(exc).__name__, exc,
            )
        else:
            logger.info("Stored barcode %s in local cache", record.barcode)
