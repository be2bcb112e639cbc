"""
SQLite backend. Params: database file path (":memory:" allowed).

One connection shared by request threads (check_same_thread=False) with
statements serialized by a backend-owned lock. Autocommit mode, so every
insert is durable once execute returns.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

from ..core.errors import FatalConfigurationError
from .backend import SQLStorageBackend
from .dialect import Dialect

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class SQLiteBackend(SQLStorageBackend):
    """Backend using a local SQLite file."""

    dialect = Dialect.SQLITE

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self.db_path: Optional[str] = None

    def _open(self, params: Union[str, Path]) -> sqlite3.Connection:
        if not params:
            raise FatalConfigurationError("SQLite backend requires a database path")
        path = str(params)
        if path != MEMORY_DB:
            p = Path(path)
            if p.is_dir():
                raise FatalConfigurationError(f"SQLite database path is a directory: {path}")
            if not p.exists():
                logger.info("Database file '%s' does not exist; creating ...", path)
                p.parent.mkdir(parents=True, exist_ok=True)
            path = str(p.resolve())
        self.db_path = path
        return sqlite3.connect(path, check_same_thread=False, isolation_level=None)

    def _close(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            conn.close()

    def _execute(self, sql: str, params: Sequence[Any]) -> None:
        with self._lock:
            self._conn.execute(sql, tuple(params))

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        with self._lock:
            return self._conn.execute(sql, tuple(params)).fetchone()
