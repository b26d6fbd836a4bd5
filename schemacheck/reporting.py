"""
reporting
=========

Report generation.

Everything here is built from a :class:`~schemacheck.diffing.ComparisonResult`,
the fix script sections, and the progress events emitted during the walk.
Nothing scrapes console output.

Primary API
-----------
- :class:`ConsoleReporter`: event sink printing progress as the walk runs
- :func:`render_console_summary`: summary + copy/paste fix commands
- :func:`render_summary_md`: Markdown report (GitHub step summary, ``SUMMARY.md``)
- :func:`render_pr_comment`: pull request comment body
- :func:`render_failure_md`: "comparison failed" notification body
- :func:`generate_summary_md`: write ``SUMMARY.md`` to an output directory
"""

from __future__ import annotations

import datetime as dt
import re
import sys
from pathlib import Path
from typing import IO, List, Optional, Sequence, Tuple

from .diffing import (
    ColumnDifferent,
    ColumnMissing,
    ComparisonResult,
    DiffEvent,
    IndexMissing,
    TableChecked,
    TableMissing,
    TablesListed,
)
from .errors import SchemaCheckError
from .statements import ScriptSection, render_sql_script
from .utils import write_text

COMMENT_MARKER = "<!-- schemacheck-report -->"


def md_anchor(title: str) -> str:
    """Create an approximate GitHub-style markdown anchor from a section title."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def md_escape(text: str) -> str:
    """Escape table-cell delimiters."""
    return text.replace("|", "\\|").replace("\n", " ")


class ConsoleReporter:
    """Print progress events as human-readable lines.

    Per-table detail is buffered until the table's :class:`TableChecked`
    event arrives, and only printed if the table has issues. Every printed
    line is also kept in :attr:`lines` for ``report.txt``.
    """

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self.stream = stream
        self.lines: List[str] = []
        self._pending: List[str] = []

    def _print(self, line: str = "") -> None:
        self.lines.append(line)
        print(line, file=self.stream or sys.stdout)

    def __call__(self, event: DiffEvent) -> None:
        if isinstance(event, TablesListed):
            self._print(f"📋 Found {event.reference_count} tables in dev database")
            self._print()
        elif isinstance(event, TableMissing):
            self._print(f"Checking table: {event.table}")
            self._print("  ❌ Missing in main")
        elif isinstance(event, ColumnMissing):
            self._pending.append(f"    ❌ Missing column: {event.column.name} ({event.column.type})")
        elif isinstance(event, ColumnDifferent):
            self._pending.append(f"    ⚠️  Different column: {event.column.name} - {', '.join(event.differences)}")
        elif isinstance(event, IndexMissing):
            self._pending.append(f"    ❌ Missing index: {event.index.name}")
        elif isinstance(event, TableChecked):
            pending, self._pending = self._pending, []
            if not event.has_issues:
                return
            self._print(f"Checking table: {event.table}")
            self._print("  ✅ Table exists in main")
            if event.missing_columns or event.different_columns:
                self._print(f"  🔍 Checked {event.column_count} columns")
            n_col_lines = event.missing_columns + event.different_columns
            for line in pending[:n_col_lines]:
                self._print(line)
            if event.missing_indexes:
                self._print(f"  🔍 Checked {event.index_count} indexes")
            for line in pending[n_col_lines:]:
                self._print(line)


def render_console_summary(result: ComparisonResult, sections: Sequence[ScriptSection]) -> str:
    """Return the end-of-run summary and the copy/paste fix commands."""
    lines: List[str] = []
    lines.append("")
    lines.append("📊 SUMMARY:")
    lines.append(f"Total tables in dev: {result.reference_table_count}")
    lines.append(f"Missing tables in main: {len(result.missing_tables)}")
    lines.append(f"Missing columns in main: {len(result.missing_columns)}")
    lines.append(f"Different columns in main: {len(result.different_columns)}")
    lines.append(f"Missing indexes in main: {len(result.missing_indexes)}")

    if result.is_in_sync:
        lines.append("")
        lines.append("✅ Main database has everything from dev!")
        return "\n".join(lines) + "\n"

    lines.append("")
    lines.append("📋 COMMANDS TO COPY/PASTE TO FIX:")
    lines.append("")
    lines.append(render_sql_script(list(sections)).rstrip("\n"))
    lines.append("")
    lines.append("❌ Main database is missing elements from dev!")
    return "\n".join(lines) + "\n"


def _status_line(result: ComparisonResult) -> str:
    if result.is_in_sync:
        return "✅ **Main database has everything from dev.**"
    return "❌ **Main database is missing elements from dev.**"


def _counts_table(result: ComparisonResult) -> List[str]:
    lines = ["| Check | Count |", "| --- | ---: |"]
    lines.append(f"| Tables in dev | {result.reference_table_count} |")
    lines.append(f"| Missing tables | {len(result.missing_tables)} |")
    lines.append(f"| Missing columns | {len(result.missing_columns)} |")
    lines.append(f"| Different columns | {len(result.different_columns)} |")
    lines.append(f"| Missing indexes | {len(result.missing_indexes)} |")
    return lines


def _detail_sections(result: ComparisonResult) -> List[Tuple[str, List[str]]]:
    """Return ``(title, lines)`` for every non-empty finding list."""
    out = []
    if result.missing_tables:
        out.append(("Missing tables", [f"- `{t}`" for t in result.missing_tables]))
    if result.missing_columns:
        rows = ["| Table | Column | Type |", "| --- | --- | --- |"]
        for item in result.missing_columns:
            rows.append(f"| `{item.table}` | `{item.column.name}` | `{md_escape(item.column.type)}` |")
        out.append(("Missing columns", rows))
    if result.different_columns:
        rows = ["| Table | Column | Differences (main → dev) |", "| --- | --- | --- |"]
        for item in result.different_columns:
            diffs = md_escape("; ".join(item.differences))
            rows.append(f"| `{item.table}` | `{item.column.name}` | {diffs} |")
        out.append(("Different columns", rows))
    if result.missing_indexes:
        rows = ["| Table | Index | Columns | Unique |", "| --- | --- | --- | --- |"]
        for index in result.missing_indexes:
            cols = ", ".join(index.columns)
            rows.append(f"| `{index.table}` | `{index.name}` | {md_escape(cols)} | {'yes' if index.unique else 'no'} |")
        out.append(("Missing indexes", rows))
    return out


def render_summary_md(
    result: ComparisonResult,
    sections: Sequence[ScriptSection],
    header_lines: Sequence[str] = (),
    title: str = "MySQL Schema Compare",
) -> str:
    """Render the full Markdown report.

    Parameters
    ----------
    result:
        Comparison outcome.
    sections:
        Fix script sections from :func:`~schemacheck.statements.corrective_statements`.
    header_lines:
        Bullet-style lines to include near the top (targets/options).
    title:
        Top-level heading.
    """
    now = dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    lines: List[str] = [f"# {title}", "", f"_Generated: {now}_", ""]
    if header_lines:
        lines.extend(header_lines)
        lines.append("")
    lines.append(_status_line(result))
    lines.append("")
    lines.extend(_counts_table(result))
    lines.append("")

    details = _detail_sections(result)
    if sections:
        details.append(("Commands to fix", ["```sql", render_sql_script(list(sections)).rstrip("\n"), "```"]))

    if details:
        lines.append("## Contents")
        for sec_title, _ in details:
            lines.append(f"- [{sec_title}](#{md_anchor(sec_title)})")
        lines.append("")
        for sec_title, body in details:
            lines.append(f"## {sec_title}")
            lines.append("")
            lines.extend(body)
            lines.append("")

    return "\n".join(lines)


def render_pr_comment(result: ComparisonResult, sections: Sequence[ScriptSection], console_log: Sequence[str] = ()) -> str:
    """Render a pull request comment body.

    The comment starts with a hidden marker so a later run can recognise it.
    Fix commands and the console narration are folded into ``<details>``
    blocks to keep the thread readable.
    """
    lines: List[str] = [COMMENT_MARKER, "## 🗄️ MySQL Schema Compare", "", _status_line(result), ""]
    lines.extend(_counts_table(result))
    lines.append("")

    for sec_title, body in _detail_sections(result):
        lines.append(f"### {sec_title}")
        lines.append("")
        lines.extend(body)
        lines.append("")

    if sections:
        lines.append("<details><summary>Commands to fix</summary>")
        lines.append("")
        lines.append("```sql")
        lines.append(render_sql_script(list(sections)).rstrip("\n"))
        lines.append("```")
        lines.append("")
        lines.append("</details>")
        lines.append("")

    if console_log:
        lines.append("<details><summary>Console output</summary>")
        lines.append("")
        lines.append("```")
        lines.extend(console_log)
        lines.append("```")
        lines.append("")
        lines.append("</details>")
        lines.append("")

    return "\n".join(lines)


def render_failure_md(error: BaseException) -> str:
    """Render the notification sent when the comparison could not run."""
    kind = error.kind if isinstance(error, SchemaCheckError) else "error"
    lines = [
        COMMENT_MARKER,
        "## 🗄️ MySQL Schema Compare",
        "",
        "⛔ **Schema comparison failed.** No drift information is available for this run.",
        "",
        f"- Failure type: `{kind}`",
        f"- Details: {md_escape(str(error))}",
        "",
    ]
    return "\n".join(lines)


def generate_summary_md(
    out_dir: Path,
    result: ComparisonResult,
    sections: Sequence[ScriptSection],
    header_lines: Sequence[str] = (),
) -> Path:
    """Write ``SUMMARY.md`` under *out_dir* and return its path."""
    summary_path = out_dir / "SUMMARY.md"
    write_text(summary_path, render_summary_md(result, sections, header_lines))
    return summary_path
