"""
diffing
=======

Schema comparison between a reference (dev) and a target (main) database.

This module contains:

- the snapshot model (:class:`ColumnDescriptor`, :class:`IndexDescriptor`)
- the column comparator (:func:`compare_columns`)
- the schema walk (:func:`diff_schemas`) producing a :class:`ComparisonResult`
- the progress events emitted during the walk (:class:`DiffEvent` subclasses)

The comparison is one-directional: it answers "does the target have everything
the reference has". Tables, columns and indexes that only exist in the target
are never reported.

Nothing here performs I/O directly; the walk pulls metadata through two
:class:`CatalogSource` objects (normally :class:`schemacheck.collectors.CatalogReader`).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple

log = logging.getLogger(__name__)


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of one table, as reported by INFORMATION_SCHEMA.COLUMNS.

    Only ``type``, ``nullable``, ``default`` and ``extra`` take part in the
    comparison. ``key_type`` and the numeric metadata are informational; their
    content is already folded into ``type``.
    """

    name: str
    type: str
    nullable: str  # "YES" | "NO"
    default: Optional[str] = None  # None means no default
    extra: str = ""
    key_type: str = ""
    max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None


@dataclass(frozen=True)
class IndexDescriptor:
    """A non-primary index, with its key parts in key order.

    ``expression_parts`` holds the positions in ``columns`` that are
    functional key parts; those entries are expression text, not column names.
    """

    name: str
    table: str
    columns: Tuple[str, ...]
    unique: bool = False
    expression_parts: Tuple[int, ...] = ()


@dataclass(frozen=True)
class MissingColumn:
    table: str
    column: ColumnDescriptor


@dataclass(frozen=True)
class DifferentColumn:
    table: str
    column: ColumnDescriptor  # reference side
    differences: Tuple[str, ...]


@dataclass
class ComparisonResult:
    """Everything the target is missing relative to the reference."""

    missing_tables: List[str] = field(default_factory=list)
    missing_columns: List[MissingColumn] = field(default_factory=list)
    different_columns: List[DifferentColumn] = field(default_factory=list)
    missing_indexes: List[IndexDescriptor] = field(default_factory=list)
    reference_table_count: int = 0

    @property
    def is_in_sync(self) -> bool:
        return not (self.missing_tables or self.missing_columns or self.different_columns or self.missing_indexes)

    def counts(self) -> Dict[str, int]:
        """Return the four difference counts keyed by output name."""
        return {
            "missing-tables": len(self.missing_tables),
            "missing-columns": len(self.missing_columns),
            "different-columns": len(self.different_columns),
            "missing-indexes": len(self.missing_indexes),
        }


# -----------------------------
# Events
# -----------------------------
@dataclass(frozen=True)
class DiffEvent:
    """Base class for progress events emitted by :func:`diff_schemas`."""


@dataclass(frozen=True)
class TablesListed(DiffEvent):
    reference_count: int
    target_count: int


@dataclass(frozen=True)
class TableMissing(DiffEvent):
    table: str


@dataclass(frozen=True)
class TableChecked(DiffEvent):
    """A table present on both sides has been compared.

    Emitted after the column and index events for that table.
    """

    table: str
    column_count: int
    index_count: int
    missing_columns: int
    different_columns: int
    missing_indexes: int

    @property
    def has_issues(self) -> bool:
        return bool(self.missing_columns or self.different_columns or self.missing_indexes)


@dataclass(frozen=True)
class ColumnMissing(DiffEvent):
    table: str
    column: ColumnDescriptor


@dataclass(frozen=True)
class ColumnDifferent(DiffEvent):
    table: str
    column: ColumnDescriptor
    differences: Tuple[str, ...]


@dataclass(frozen=True)
class IndexMissing(DiffEvent):
    index: IndexDescriptor


EventSink = Callable[[DiffEvent], None]


class CatalogSource(Protocol):
    """What :func:`diff_schemas` needs from each side."""

    def list_tables(self) -> List[str]: ...

    def get_columns(self, table: str) -> List[ColumnDescriptor]: ...

    def get_indexes(self, table: str) -> List[IndexDescriptor]: ...


# -----------------------------
# Column comparison
# -----------------------------
_INT_DISPLAY_WIDTH = re.compile(r"\b(tinyint|smallint|mediumint|int|integer|bigint)\(\d+\)")


def normalize_type(type_: str) -> str:
    """Return a canonical spelling of a column type.

    Lowercases, collapses whitespace, and drops integer display widths, so
    ``INT(11)``, ``int(10)`` and ``int`` compare equal. Only used when type
    normalization is switched on.
    """
    text = " ".join(type_.lower().split())
    text = _INT_DISPLAY_WIDTH.sub(r"\1", text)
    return re.sub(r"\binteger\b", "int", text)


def _default_text(value: Optional[str]) -> str:
    return "NULL" if value is None else value


def compare_columns(
    reference: ColumnDescriptor,
    target: ColumnDescriptor,
    normalize_types: bool = False,
) -> List[str]:
    """Compare two definitions of the same column.

    Parameters
    ----------
    reference:
        The column as defined in the reference (dev) database.
    target:
        The column as defined in the target (main) database.
    normalize_types:
        Compare types through :func:`normalize_type` instead of verbatim.

    Returns
    -------
    list of str
        One note per differing dimension, in the order type, nullable,
        default, extra. Each note reads ``<target> → <reference>``. Empty if
        the definitions match.

    Notes
    -----
    A missing default and a literal ``NULL`` default compare equal.
    """
    notes: List[str] = []

    if normalize_types:
        type_differs = normalize_type(reference.type) != normalize_type(target.type)
    else:
        type_differs = reference.type != target.type
    if type_differs:
        notes.append(f"type: '{target.type}' → '{reference.type}'")

    if reference.nullable != target.nullable:
        notes.append(f"nullable: {target.nullable} → {reference.nullable}")

    ref_default = _default_text(reference.default)
    tgt_default = _default_text(target.default)
    if ref_default != tgt_default:
        notes.append(f"default: {tgt_default} → {ref_default}")

    if reference.extra != target.extra:
        notes.append(f"extra: '{target.extra}' → '{reference.extra}'")

    return notes


# -----------------------------
# Schema walk
# -----------------------------
def _emit(sink: Optional[EventSink], event: DiffEvent) -> None:
    if sink is not None:
        sink(event)


def diff_schemas(
    reference: CatalogSource,
    target: CatalogSource,
    sink: Optional[EventSink] = None,
    table_filter: Optional[Callable[[List[str]], List[str]]] = None,
    normalize_types: bool = False,
) -> ComparisonResult:
    """Compute what *target* is missing relative to *reference*.

    Parameters
    ----------
    reference, target:
        Catalog sources for the two databases.
    sink:
        Optional callable receiving :class:`DiffEvent` objects in walk order.
    table_filter:
        Optional callable narrowing the reference table list before the walk.
    normalize_types:
        Passed to :func:`compare_columns`.

    Returns
    -------
    ComparisonResult
        Lists are ordered by reference table, then by column ordinal / index
        order within the table.

    Notes
    -----
    A table missing from the target is recorded once; its columns and
    indexes are not listed individually. Any error raised by a catalog source
    propagates unchanged and no partial result is returned.
    """
    result = ComparisonResult()

    ref_tables = reference.list_tables()
    tgt_tables = set(target.list_tables())
    if table_filter is not None:
        ref_tables = table_filter(ref_tables)
    result.reference_table_count = len(ref_tables)
    log.debug("reference tables=%d target tables=%d", len(ref_tables), len(tgt_tables))
    _emit(sink, TablesListed(reference_count=len(ref_tables), target_count=len(tgt_tables)))

    for table in ref_tables:
        if table not in tgt_tables:
            result.missing_tables.append(table)
            _emit(sink, TableMissing(table))
            continue

        ref_columns = reference.get_columns(table)
        tgt_columns = {c.name: c for c in target.get_columns(table)}
        ref_indexes = reference.get_indexes(table)
        tgt_index_names = {i.name for i in target.get_indexes(table)}

        n_missing_cols = n_diff_cols = n_missing_idx = 0

        for column in ref_columns:
            other = tgt_columns.get(column.name)
            if other is None:
                result.missing_columns.append(MissingColumn(table, column))
                _emit(sink, ColumnMissing(table, column))
                n_missing_cols += 1
                continue
            notes = compare_columns(column, other, normalize_types=normalize_types)
            if notes:
                result.different_columns.append(DifferentColumn(table, column, tuple(notes)))
                _emit(sink, ColumnDifferent(table, column, tuple(notes)))
                n_diff_cols += 1

        for index in ref_indexes:
            if index.name not in tgt_index_names:
                result.missing_indexes.append(index)
                _emit(sink, IndexMissing(index))
                n_missing_idx += 1

        _emit(
            sink,
            TableChecked(
                table=table,
                column_count=len(ref_columns),
                index_count=len(ref_indexes),
                missing_columns=n_missing_cols,
                different_columns=n_diff_cols,
                missing_indexes=n_missing_idx,
            ),
        )

    return result
