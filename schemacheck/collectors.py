"""
collectors
==========

Catalog reading for MySQL schema drift detection.

This module is responsible for the read-only metadata queries issued against
one side of the comparison. :class:`CatalogReader` wraps a single, exclusively
owned connection and turns INFORMATION_SCHEMA / ``SHOW`` output into
:class:`~schemacheck.diffing.ColumnDescriptor` and
:class:`~schemacheck.diffing.IndexDescriptor` values.

The orchestration layer (:mod:`schemacheck.diffing`) drives which reads run.

Design choices
--------------
- Tables are listed from INFORMATION_SCHEMA.TABLES, base tables only, so views
  never take part in the comparison.
- Column reads are scoped to ``DATABASE()`` so a same-named table in another
  schema on the same server can never leak in.
- Nothing is cached: every call is a round-trip.

Public helpers
--------------
- :class:`CatalogReader`
- :func:`group_index_rows` (multi-row ``SHOW INDEX`` output to descriptors)
- :func:`filter_tables` (include/exclude patterns)
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pymysql

from .diffing import ColumnDescriptor, IndexDescriptor
from .errors import CatalogQueryError, DatabaseConnectionError
from .utils import quote_ident

log = logging.getLogger(__name__)

# CR_SERVER_GONE_ERROR, CR_SERVER_LOST, CR_CONN_HOST_ERROR
_LOST_SESSION_CODES = {2006, 2013, 2003}


@dataclass(frozen=True)
class TableFilter:
    """Include/exclude patterns for table selection."""
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    case_sensitive: bool = False


# ---- catalog queries ----
Q_LIST_TABLES = """
SELECT TABLE_NAME AS table_name
FROM INFORMATION_SCHEMA.TABLES
WHERE TABLE_SCHEMA = DATABASE()
  AND TABLE_TYPE = 'BASE TABLE'
ORDER BY TABLE_NAME
"""

Q_COLUMNS = """
SELECT
  COLUMN_NAME AS name,
  COLUMN_TYPE AS type,
  IS_NULLABLE AS nullable,
  COLUMN_DEFAULT AS default_value,
  EXTRA AS extra,
  COLUMN_KEY AS key_type,
  CHARACTER_MAXIMUM_LENGTH AS max_length,
  NUMERIC_PRECISION AS numeric_precision,
  NUMERIC_SCALE AS numeric_scale
FROM INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_SCHEMA = DATABASE()
  AND TABLE_NAME = %s
ORDER BY ORDINAL_POSITION
"""


def q_show_create_table(table: str) -> str:
    """SHOW CREATE TABLE query for a table."""
    return f"SHOW CREATE TABLE {quote_ident(table)}"


def q_show_index(table: str) -> str:
    """SHOW INDEX query for a table."""
    return f"SHOW INDEX FROM {quote_ident(table)}"


# ---- row conversion ----
def _text(value: Any) -> Optional[str]:
    """Decode catalog values that some server versions return as bytes."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def column_from_row(row: Mapping[str, Any]) -> ColumnDescriptor:
    """Build a :class:`ColumnDescriptor` from one INFORMATION_SCHEMA.COLUMNS row."""
    return ColumnDescriptor(
        name=_text(row["name"]) or "",
        type=_text(row["type"]) or "",
        nullable=_text(row["nullable"]) or "",
        default=_text(row["default_value"]),
        extra=_text(row.get("extra")) or "",
        key_type=_text(row.get("key_type")) or "",
        max_length=_int(row.get("max_length")),
        numeric_precision=_int(row.get("numeric_precision")),
        numeric_scale=_int(row.get("numeric_scale")),
    )


def group_index_rows(table: str, rows: Iterable[Mapping[str, Any]]) -> List[IndexDescriptor]:
    """Group ``SHOW INDEX`` rows into index descriptors.

    ``SHOW INDEX`` returns one row per (index, column) pair, ordered by index
    then ``Seq_in_index``. Rows are grouped by ``Key_name`` in first-seen
    order; each index keeps its columns in the order they arrive. The
    ``PRIMARY`` key is skipped.

    Parameters
    ----------
    table:
        Owning table name, copied onto every descriptor.
    rows:
        ``SHOW INDEX`` rows as dicts.

    Returns
    -------
    list of IndexDescriptor
    """
    columns: Dict[str, List[str]] = {}
    unique: Dict[str, bool] = {}
    expressions: Dict[str, List[int]] = {}
    for row in rows:
        name = _text(row["Key_name"]) or ""
        if name == "PRIMARY":
            continue
        if name not in columns:
            columns[name] = []
            unique[name] = int(row["Non_unique"]) == 0
            expressions[name] = []
        col = _text(row.get("Column_name"))
        if col is None:
            # functional key part: NULL column name, text in Expression
            expressions[name].append(len(columns[name]))
            col = _text(row.get("Expression")) or ""
        columns[name].append(col)
    return [
        IndexDescriptor(
            name=name,
            table=table,
            columns=tuple(cols),
            unique=unique[name],
            expression_parts=tuple(expressions[name]),
        )
        for name, cols in columns.items()
    ]


# ---- table filter helpers ----
def sql_like_to_fnmatch(pattern: str) -> str:
    """Convert SQL LIKE patterns (% and _) to fnmatch syntax (* and ?)."""
    return pattern.replace("%", "*").replace("_", "?")


def matches_pattern(name: str, pattern: str, case_sensitive: bool = False) -> bool:
    """Return True if name matches pattern (LIKE by default, regex via ``re:``)."""
    if pattern.startswith("re:"):
        flags = 0 if case_sensitive else re.IGNORECASE
        return re.search(pattern[3:], name, flags) is not None
    fm = sql_like_to_fnmatch(pattern)
    if case_sensitive:
        return fnmatch.fnmatchcase(name, fm)
    return fnmatch.fnmatchcase(name.lower(), fm.lower())


def filter_tables(
    tables: Sequence[str],
    include: Sequence[str],
    exclude: Sequence[str],
    case_sensitive: bool = False,
) -> List[str]:
    """Filter tables using include/exclude patterns.

    Include patterns keep a table if it matches *any* include pattern.
    Exclude patterns drop a table if it matches *any* exclude pattern.
    The input order is preserved.
    """
    result = list(tables)
    if include:
        result = [t for t in result if any(matches_pattern(t, p, case_sensitive) for p in include)]
    if exclude:
        result = [t for t in result if not any(matches_pattern(t, p, case_sensitive) for p in exclude)]
    return result


# ---- reader ----
class CatalogReader:
    """Read-only structural introspection of one database.

    Parameters
    ----------
    conn:
        An open DB-API connection whose cursors return dict rows (PyMySQL
        ``DictCursor``). The reader does not close it.
    label:
        Side label used in error messages (``"dev"`` / ``"main"``).
    """

    def __init__(self, conn: Any, label: str) -> None:
        self.conn = conn
        self.label = label

    def _fetch(self, operation: str, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        log.debug("%s %s: %s", self.label, operation, " ".join(query.split()))
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, params)
                return list(cur.fetchall())
        except (pymysql.err.InterfaceError, pymysql.err.OperationalError) as exc:
            code = exc.args[0] if exc.args else None
            if isinstance(exc, pymysql.err.InterfaceError) or code in _LOST_SESSION_CODES:
                raise DatabaseConnectionError(
                    f"connection unusable: {exc}", side=self.label, operation=operation
                ) from exc
            raise CatalogQueryError(str(exc), side=self.label, operation=operation) from exc
        except pymysql.MySQLError as exc:
            raise CatalogQueryError(str(exc), side=self.label, operation=operation) from exc

    def list_tables(self) -> List[str]:
        """Return every base table in the current database, sorted by name."""
        rows = self._fetch("list_tables", Q_LIST_TABLES)
        return [_text(row["table_name"]) or "" for row in rows]

    def get_create_statement(self, table: str) -> str:
        """Return the server's ``CREATE TABLE`` text for *table*."""
        rows = self._fetch(f"show_create_table {table}", q_show_create_table(table))
        if not rows:
            raise CatalogQueryError(
                f"no CREATE TABLE returned for {table}", side=self.label, operation="show_create_table"
            )
        return _text(rows[0]["Create Table"]) or ""

    def get_columns(self, table: str) -> List[ColumnDescriptor]:
        """Return the columns of *table* in ordinal order."""
        rows = self._fetch(f"get_columns {table}", Q_COLUMNS, (table,))
        return [column_from_row(row) for row in rows]

    def get_indexes(self, table: str) -> List[IndexDescriptor]:
        """Return the non-primary indexes of *table*."""
        rows = self._fetch(f"get_indexes {table}", q_show_index(table))
        return group_index_rows(table, rows)
