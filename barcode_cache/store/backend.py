"""
SQL storage backend: the local DataSource over a relational database.

One implementation of the cache protocol for every engine. Each engine
subclass opens its driver connection and executes statements; the dialect
shim supplies the SQL. Per-engine state is one live connection plus the
compiled DialectProfile, and nothing is queried before both exist.

Error contract:
- initialize: any failure -> FatalConfigurationError (startup aborts)
- lookup: driver error -> LookupFailure; no row -> None
- store: driver error -> StoreFailure
- empty barcode or uninitialized backend -> FatalConfigurationError
"""

from __future__ import annotations

import abc
import logging
from typing import Any, ClassVar, Optional, Sequence, Tuple, Union

from ..core.errors import FatalConfigurationError, LookupFailure, StoreFailure
from ..sources.base import BarcodeRecord
from .dialect import Dialect, DialectProfile, compile_profile

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    """Column value -> str. Some drivers hand back bytes for text columns."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


class SQLStorageBackend(abc.ABC):
    """Local persistent DataSource. Subclasses bind a driver to a Dialect."""

    dialect: ClassVar[Dialect]

    def __init__(self) -> None:
        self._conn: Any = None
        self._profile: Optional[DialectProfile] = None

    @property
    def source_name(self) -> str:
        return self.dialect.value

    @property
    def profile(self) -> Optional[DialectProfile]:
        return self._profile

    @property
    def is_open(self) -> bool:
        return self._conn is not None and self._profile is not None

    # -- driver hooks ---------------------------------------------------------

    @abc.abstractmethod
    def _open(self, params: Any) -> Any:
        """Open and return a driver connection."""
        ...

    @abc.abstractmethod
    def _close(self, conn: Any) -> None:
        ...

    @abc.abstractmethod
    def _execute(self, sql: str, params: Sequence[Any]) -> None:
        ...

    @abc.abstractmethod
    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        ...

    def _run_setup(self, profile: DialectProfile) -> None:
        self._execute(profile.create_table, ())

    def _run_lookup(self, profile: DialectProfile, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        return self._fetch_one(profile.lookup, params)

    def _run_insert(self, profile: DialectProfile, params: Sequence[Any]) -> None:
        self._execute(profile.insert, params)

    # -- DataSource -----------------------------------------------------------

    def initialize(self, params: Any) -> None:
        """Open the connection, compile this dialect's statements, create the table."""
        self.shutdown()
        profile = compile_profile(self.dialect)

        try:
            conn = self._open(params)
        except FatalConfigurationError:
            raise
        except Exception as exc:
            raise FatalConfigurationError(
                f"Unable to open {self.dialect.value} database: {exc}"
            ) from exc

        self._conn = conn
        self._profile = profile
        try:
            self._run_setup(profile)
        except Exception as exc:
            self.shutdown()
            raise FatalConfigurationError(
                f"Unable to set up {self.dialect.value} database: {exc}"
            ) from exc
        logger.info("Storage ready: %s", self.dialect.value)

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        profile = self._require(barcode, "lookup")
        try:
            row = self._run_lookup(profile, (barcode,))
            if row is None:
                return None
            # Undecodable column bytes fail here, same as a driver error.
            return BarcodeRecord(
                barcode=barcode,
                isbn=_as_text(row[0]),
                author=_as_text(row[1]),
                title=_as_text(row[2]),
            )
        except Exception as exc:
            raise LookupFailure(
                f"{self.dialect.value} lookup failed for barcode {barcode!r}: {exc}"
            ) from exc

    def store(self, record: BarcodeRecord) -> None:
        if record is None:
            raise FatalConfigurationError("store called with no record")
        profile = self._require(record.barcode, "store")
        params = (record.barcode, record.isbn, record.author, record.title, record.barcode)
        try:
            self._run_insert(profile, params)
        except Exception as exc:
            raise StoreFailure(
                f"{self.dialect.value} store failed for barcode {record.barcode!r}: {exc}"
            ) from exc

    def shutdown(self) -> None:
        conn, self._conn = self._conn, None
        self._profile = None
        if conn is None:
            return
        try:
            self._close(conn)
        except Exception as exc:
            logger.warning("Error closing %s connection: %s", self.dialect.value, exc)

    def _require(self, barcode: str, op: str) -> DialectProfile:
        if not barcode:
            raise FatalConfigurationError(f"Empty barcode passed to {self.dialect.value} {op}")
        if self._conn is None or self._profile is None:
            raise FatalConfigurationError(
                f"{self.dialect.value} {op} called before initialize()"
            )
        return self._profile


def get_storage_backend(dialect: Union[str, Dialect]) -> SQLStorageBackend:
    """Return a fresh, uninitialized backend for a dialect."""
    d = Dialect.parse(dialect)
    if d is Dialect.SQLITE:
        from .sqlite_backend import SQLiteBackend

        return SQLiteBackend()
    if d is Dialect.POSTGRES:
        from .postgres_backend import PostgresBackend

        return PostgresBackend()
    from .mysql_backend import MySQLBackend

    return MySQLBackend()
