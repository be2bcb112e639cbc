"""
SQL dialect shim: one set of canonical statements, compiled per database.

The canonical templates are plain SQL with two kinds of markers:
- {id_type}: the primary-key column declaration (create-table only)
- ?:         a positional parameter marker

Databases differ in how they declare an engine-assigned primary key and in
the parameter marker syntax their drivers accept:

    dialect    id_type                                 markers
    mysql      int AUTO_INCREMENT                      ?  (unchanged)
    postgres   int GENERATED BY DEFAULT AS IDENTITY    $1, $2, ... left to right
    sqlite     integer                                 ?  (unchanged)

Compilation is pure: no I/O, same input -> same profile. Supporting another
database means adding a _DialectRule, never editing the templates.

Note: MySQL cannot put a UNIQUE index on unbounded text, hence varchar(50)
for the barcode column everywhere.
"""

from __future__ import annotations

import enum
import itertools
import re
from dataclasses import dataclass
from typing import Dict, Union

from ..core.errors import UnsupportedDialect

TABLE_NAME = "barcodes"
MARKER = "?"

CREATE_TABLE_TEMPLATE = f"""CREATE TABLE IF NOT EXISTS {TABLE_NAME}(
    id      {{id_type}}  PRIMARY KEY,
    barcode varchar(50) NOT NULL UNIQUE,
    isbn    text        NOT NULL,
    author  text        NOT NULL,
    title   text        NOT NULL);"""

LOOKUP_TEMPLATE = f"SELECT isbn,author,title FROM {TABLE_NAME} WHERE barcode=(?);"

# Conditional insert: a second store of the same barcode is a no-op rather
# than a uniqueness violation.
INSERT_TEMPLATE = f"""INSERT INTO {TABLE_NAME}(barcode,isbn,author,title)
    SELECT ?,?,?,?
    WHERE NOT EXISTS (SELECT * FROM {TABLE_NAME} WHERE barcode=(?));"""

_TEMPLATE_MARKER_RE = re.compile(r"\{[a-z_]+\}")


class Dialect(enum.Enum):
    """Supported database dialects (closed set)."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: Union[str, "Dialect"]) -> "Dialect":
        if isinstance(value, Dialect):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for d in cls:
                if d.value == key:
                    return d
        raise UnsupportedDialect(
            f"Unknown database type {value!r}. Supported: {[d.value for d in cls]}"
        )


@dataclass(frozen=True)
class _DialectRule:
    id_type: str
    # Empty prefix: keep the generic marker. Otherwise rewrite to <prefix><n>.
    marker_prefix: str = ""


_RULES: Dict[Dialect, _DialectRule] = {
    Dialect.MYSQL: _DialectRule(id_type="int AUTO_INCREMENT"),
    Dialect.POSTGRES: _DialectRule(id_type="int GENERATED BY DEFAULT AS IDENTITY", marker_prefix="$"),
    Dialect.SQLITE: _DialectRule(id_type="integer"),
}


@dataclass(frozen=True)
class DialectProfile:
    """Compiled statements for one dialect. Fully resolved; immutable."""

    dialect: Dialect
    create_table: str
    lookup: str
    insert: str

    @property
    def lookup_arity(self) -> int:
        return count_parameters(LOOKUP_TEMPLATE)

    @property
    def insert_arity(self) -> int:
        return count_parameters(INSERT_TEMPLATE)


def count_parameters(template: str) -> int:
    """Number of positional markers in a canonical template."""
    return template.count(MARKER)


def number_markers(sql: str, prefix: str) -> str:
    """Rewrite each generic marker to prefix+n, n counting from 1 left to right."""
    counter = itertools.count(1)
    return re.sub(re.escape(MARKER), lambda _m: f"{prefix}{next(counter)}", sql)


def compile_profile(dialect: Union[str, Dialect]) -> DialectProfile:
    """
    Build the DialectProfile for a dialect identifier.

    Raises UnsupportedDialect for identifiers outside the supported set; no
    partial profile is ever returned.
    """
    d = Dialect.parse(dialect)
    rule = _RULES.get(d)
    if rule is None:
        raise UnsupportedDialect(f"No compilation rule for dialect {d.value!r}")

    create_table = CREATE_TABLE_TEMPLATE.format(id_type=rule.id_type)
    lookup, insert = LOOKUP_TEMPLATE, INSERT_TEMPLATE
    if rule.marker_prefix:
        lookup = number_markers(lookup, rule.marker_prefix)
        insert = number_markers(insert, rule.marker_prefix)

    profile = DialectProfile(dialect=d, create_table=create_table, lookup=lookup, insert=insert)
    for stmt in (profile.create_table, profile.lookup, profile.insert):
        if _TEMPLATE_MARKER_RE.search(stmt):
            raise UnsupportedDialect(f"Unresolved template marker in {d.value} statement: {stmt}")
    return profile


__all__ = [
    "CREATE_TABLE_TEMPLATE",
    "Dialect",
    "DialectProfile",
    "INSERT_TEMPLATE",
    "LOOKUP_TEMPLATE",
    "TABLE_NAME",
    "compile_profile",
    "count_parameters",
    "number_markers",
]
