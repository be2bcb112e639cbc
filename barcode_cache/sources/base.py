"""
Data source interface and record contract.

Every data source (local SQL storage, remote web service, test stubs) implements
the same four-operation protocol:
- initialize(params): connect / configure; fatal on failure
- lookup(barcode): record or None
- store(record): persist (may be a no-op for read-only sources)
- shutdown(): release resources; safe to call repeatedly

Records are frozen dataclasses so nothing downstream can mutate an answer.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable


def _text_or_empty(value: Any) -> str:
    return "" if value is None else str(value)


class SourceStatus(enum.Enum):
    """Health status of a remote data source."""

    OK = "OK"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


@dataclass(frozen=True)
class BarcodeRecord:
    """Immutable barcode item: the key plus three opaque attributes."""

    barcode: str
    isbn: str
    author: str
    title: str

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, str):
                raise TypeError(f"BarcodeRecord.{f.name} must be str, got {type(value).__name__}")

    def to_dict(self) -> Dict[str, str]:
        """Wire shape: exactly barcode, isbn, author, title."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BarcodeRecord":
        """Inverse of to_dict. Missing keys and JSON nulls become ""."""
        return cls(**{f.name: _text_or_empty(data.get(f.name)) for f in fields(cls)})


@dataclass
class SourceHealth:
    """
    Rolling health of one remote source, updated by its lookups and read by
    GET /health. Consecutive failures degrade the status; one success resets it.
    """

    source_name: str
    degraded_after: int = 2
    down_after: int = 5
    status: SourceStatus = field(default=SourceStatus.OK, init=False)
    last_ok_at: Optional[str] = field(default=None, init=False)
    fail_count: int = field(default=0, init=False)
    last_error: Optional[str] = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def record_success(self) -> None:
        with self._lock:
            self.status = SourceStatus.OK
            self.fail_count = 0
            self.last_ok_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
            self.last_error = None

    def record_failure(self, error: str) -> None:
        with self._lock:
            self.fail_count += 1
            self.last_error = error[:500]
            if self.fail_count >= self.down_after:
                self.status = SourceStatus.DOWN
            elif self.fail_count >= self.degraded_after:
                self.status = SourceStatus.DEGRADED

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "source_name": self.source_name,
                "status": self.status.value,
                "last_ok_at": self.last_ok_at,
                "fail_count": self.fail_count,
                "last_error": self.last_error,
            }


@runtime_checkable
class DataSource(Protocol):
    """Capability contract shared by local storage and remote sources."""

    @property
    def source_name(self) -> str: ...

    def initialize(self, params: Any) -> None:
        """Open connections / apply credentials. Raises FatalConfigurationError on failure."""
        ...

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        """Return the record for barcode, or None when the source has no answer."""
        ...

    def store(self, record: BarcodeRecord) -> None:
        """Persist record. Read-only sources may ignore it."""
        ...

    def shutdown(self) -> None:
        """Release resources. Repeated calls are no-ops."""
        ...
