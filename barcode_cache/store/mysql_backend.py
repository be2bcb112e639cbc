"""
MySQL backend using mysql-connector-python. Params: mapping with host, port,
user, password, database.

Statements run through prepared cursors, which take the generic ? marker
as-is. mysql-connector connections are not thread-safe, so a backend-owned
lock serializes access; autocommit keeps every insert durable on return.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..core.errors import FatalConfigurationError
from .backend import SQLStorageBackend
from .dialect import Dialect

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306


def _import_mysql_connector():
    try:
        import mysql.connector

        return mysql.connector
    except ImportError:
        return None


class MySQLBackend(SQLStorageBackend):
    """Backend for a MySQL / MariaDB server."""

    dialect = Dialect.MYSQL

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()

    def _open(self, params: Mapping[str, Any]) -> Any:
        if not isinstance(params, Mapping) or not params.get("database"):
            raise FatalConfigurationError("MySQL backend requires connection params with a database name")
        connector = _import_mysql_connector()
        if connector is None:
            raise FatalConfigurationError(
                "mysql-connector-python is not installed. "
                "Install with: pip install 'barcode-cache[mysql]'"
            )
        return connector.connect(
            host=params.get("host", "localhost"),
            port=int(params.get("port") or DEFAULT_PORT),
            user=params.get("user"),
            password=params.get("password"),
            database=params["database"],
            autocommit=True,
        )

    def _close(self, conn: Any) -> None:
        with self._lock:
            conn.close()

    def _execute(self, sql: str, params: Sequence[Any]) -> None:
        with self._lock:
            cur = self._conn.cursor(prepared=bool(params))
            try:
                cur.execute(sql, tuple(params) if params else ())
            finally:
                cur.close()

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        with self._lock:
            cur = self._conn.cursor(prepared=True)
            try:
                cur.execute(sql, tuple(params))
                # Drain the result set; unread rows block the next statement.
                rows = cur.fetchall()
            finally:
                cur.close()
        return tuple(rows[0]) if rows else None
