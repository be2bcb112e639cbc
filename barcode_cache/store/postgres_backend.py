"""
PostgreSQL backend using psycopg2. Params: libpq DSN string, e.g.
"host=localhost port=5432 user=u password=p dbname=barcode_cache sslmode=disable".

The compiled statements use $n markers, which is Postgres' own syntax for
server-side prepared statements; they are registered once per connection with
PREPARE and run with EXECUTE, psycopg2 binding the EXECUTE arguments. The
connection runs in autocommit mode and is shared across threads (psycopg2
connections are thread-safe; every call uses its own cursor).
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Tuple

from ..core.errors import FatalConfigurationError
from .backend import SQLStorageBackend
from .dialect import Dialect, DialectProfile

logger = logging.getLogger(__name__)

LOOKUP_STATEMENT = "barcode_lookup"
INSERT_STATEMENT = "barcode_insert"


def _import_psycopg2():
    try:
        import psycopg2

        return psycopg2
    except ImportError:
        return None


def _prepare(name: str, arity: int, sql: str) -> str:
    # All parameters declared as text.
    return f"PREPARE {name} ({', '.join(['text'] * arity)}) AS {sql}"


def _execute_call(name: str, arity: int) -> str:
    return f"EXECUTE {name} ({', '.join(['%s'] * arity)})"


class PostgresBackend(SQLStorageBackend):
    """Backend for a PostgreSQL server."""

    dialect = Dialect.POSTGRES

    def _open(self, params: str) -> Any:
        if not params:
            raise FatalConfigurationError("Postgres backend requires a DSN")
        pg = _import_psycopg2()
        if pg is None:
            raise FatalConfigurationError(
                "psycopg2 is not installed. Install with: pip install 'barcode-cache[postgres]'"
            )
        conn = pg.connect(params)
        conn.autocommit = True
        return conn

    def _close(self, conn: Any) -> None:
        conn.close()

    def _execute(self, sql: str, params: Sequence[Any]) -> None:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params) if params else None)

    def _fetch_one(self, sql: str, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params) if params else None)
            return cur.fetchone()

    def _run_setup(self, profile: DialectProfile) -> None:
        self._execute(profile.create_table, ())
        self._execute(_prepare(LOOKUP_STATEMENT, profile.lookup_arity, profile.lookup), ())
        self._execute(_prepare(INSERT_STATEMENT, profile.insert_arity, profile.insert), ())

    def _run_lookup(self, profile: DialectProfile, params: Sequence[Any]) -> Optional[Tuple[Any, ...]]:
        return self._fetch_one(_execute_call(LOOKUP_STATEMENT, profile.lookup_arity), params)

    def _run_insert(self, profile: DialectProfile, params: Sequence[Any]) -> None:
        self._execute(_execute_call(INSERT_STATEMENT, profile.insert_arity), params)
