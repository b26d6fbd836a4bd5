"""
statements
==========

Corrective SQL generation.

Turns the findings of a :class:`~schemacheck.diffing.ComparisonResult` into
DDL a human can review and run against the target database. Nothing in this
module executes SQL.

Defaults and ``EXTRA`` modifiers are interpolated exactly as the catalog
reported them (including expressions such as ``CURRENT_TIMESTAMP``); only
identifiers are quoted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol

from .diffing import ColumnDescriptor, ComparisonResult, IndexDescriptor
from .utils import quote_ident


class CreateStatementSource(Protocol):
    def get_create_statement(self, table: str) -> str: ...


@dataclass
class ScriptSection:
    """A titled group of statements in the fix script."""

    title: str
    statements: List[str] = field(default_factory=list)


def create_table_statement(ddl: str) -> str:
    """Terminate a ``SHOW CREATE TABLE`` text with a semicolon."""
    return ddl.rstrip().rstrip(";") + ";"


def _column_statement(verb: str, table: str, column: ColumnDescriptor) -> str:
    sql = f"ALTER TABLE {quote_ident(table)} {verb} COLUMN {quote_ident(column.name)} {column.type}"
    if column.nullable == "NO":
        sql += " NOT NULL"
    if column.default is not None:
        sql += f" DEFAULT {column.default}"
    if column.extra:
        sql += f" {column.extra}"
    return sql + ";"


def add_column_statement(table: str, column: ColumnDescriptor) -> str:
    """``ALTER TABLE ... ADD COLUMN`` for a column missing from the target."""
    return _column_statement("ADD", table, column)


def modify_column_statement(table: str, column: ColumnDescriptor) -> str:
    """``ALTER TABLE ... MODIFY COLUMN`` restoring the reference definition."""
    return _column_statement("MODIFY", table, column)


def create_index_statement(index: IndexDescriptor) -> str:
    """``CREATE [UNIQUE] INDEX`` for an index missing from the target.

    Functional key parts are written as parenthesized expressions, the form
    MySQL requires for them; plain key parts are quoted column names.
    """
    unique = "UNIQUE " if index.unique else ""
    columns = ", ".join(
        f"({part})" if pos in index.expression_parts else quote_ident(part)
        for pos, part in enumerate(index.columns)
    )
    return f"CREATE {unique}INDEX {quote_ident(index.name)} ON {quote_ident(index.table)} ({columns});"


def corrective_statements(result: ComparisonResult, reference: CreateStatementSource) -> List[ScriptSection]:
    """Build the fix script for *result*.

    Parameters
    ----------
    result:
        Output of :func:`~schemacheck.diffing.diff_schemas`.
    reference:
        Reader on the reference database, used to fetch ``CREATE TABLE`` text
        for missing tables.

    Returns
    -------
    list of ScriptSection
        Only non-empty sections, in the order tables, columns, modified
        columns, indexes.
    """
    sections: List[ScriptSection] = []

    if result.missing_tables:
        sec = ScriptSection("Missing Tables")
        for table in result.missing_tables:
            sec.statements.append(create_table_statement(reference.get_create_statement(table)))
        sections.append(sec)

    if result.missing_columns:
        sec = ScriptSection("Missing Columns")
        for item in result.missing_columns:
            sec.statements.append(add_column_statement(item.table, item.column))
        sections.append(sec)

    if result.different_columns:
        sec = ScriptSection("Modified Columns (review carefully before running)")
        for item in result.different_columns:
            note = f"-- Column {item.column.name} in table {item.table}: {', '.join(item.differences)}"
            sec.statements.append(note + "\n" + modify_column_statement(item.table, item.column))
        sections.append(sec)

    if result.missing_indexes:
        sec = ScriptSection("Missing Indexes")
        for index in result.missing_indexes:
            sec.statements.append(create_index_statement(index))
        sections.append(sec)

    return sections


def render_sql_script(sections: List[ScriptSection]) -> str:
    """Join script sections into one SQL text."""
    parts: List[str] = []
    for sec in sections:
        parts.append(f"-- {sec.title} --\n")
        for stmt in sec.statements:
            parts.append(stmt + "\n")
        parts.append("\n")
    return "".join(parts)
