"""Remote stand-in that invents an item for any barcode. For demos and offline use."""
from __future__ import annotations

import logging
import random
from typing import Any, Optional

from .base import BarcodeRecord

logger = logging.getLogger(__name__)


class RandomSource:
    """Return ISBN<n>/Author<n>/Title<n> for a random n. Read-only."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    @property
    def source_name(self) -> str:
        return "random"

    def initialize(self, params: Any = None) -> None:
        pass

    def shutdown(self) -> None:
        pass

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        n = self._rng.randrange(1_000_000)
        return BarcodeRecord(
            barcode=barcode,
            isbn=f"ISBN{n}",
            author=f"Author{n}",
            title=f"Title{n}",
        )

    def store(self, record: BarcodeRecord) -> None:
        logger.warning("store called on read-only random source (barcode %s)", record.barcode)
