#!/usr/bin/env python3
"""
cli
===

Compare two MySQL databases and report what the *main* (target) database is
missing relative to the *dev* (reference) database.

The run:

- connects to both databases (read-only use)
- walks the dev tables, comparing columns and secondary indexes by name
- prints progress, a summary and copy/paste fix commands
- publishes step outputs, and in GitHub Actions a job summary and an optional
  pull request comment
- optionally writes ``report.txt``, ``SUMMARY.md`` and ``fix.sql`` to ``--out``

Exit codes
----------
- ``0``: the comparison completed (drift or not)
- ``1``: drift was found and ``--fail-on-drift`` / ``fail_on_drift`` is on
- ``1``: configuration, connection or query error

CLI Usage
---------

Basic run with a config file::

    schemacheck --config schemacheck.yml

Everything from flags and the environment::

    SCHEMACHECK_DEV_PASSWORD=... SCHEMACHECK_MAIN_PASSWORD=... \\
    schemacheck --dev-host dev-db --dev-user ro --dev-database app \\
                --main-host prod-db --main-user ro --main-database app

Fail the pipeline when main is behind::

    schemacheck --config schemacheck.yml --fail-on-drift

Only compare some tables::

    schemacheck --config schemacheck.yml --include "orders%" --exclude "re:_old$"
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import ExitStack, closing
from functools import partial
from typing import List, Mapping, Optional, Sequence

from . import github
from .auth import connect
from .collectors import CatalogReader, filter_tables
from .config import Settings, load_settings
from .diffing import ComparisonResult, diff_schemas
from .errors import NotificationError, SchemaCheckError
from .reporting import (
    ConsoleReporter,
    generate_summary_md,
    render_console_summary,
    render_failure_md,
    render_pr_comment,
    render_summary_md,
)
from .statements import ScriptSection, corrective_statements, render_sql_script
from .utils import write_text

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="schemacheck",
        description="Report tables, columns and indexes the main MySQL database is missing compared to dev.",
    )
    ap.add_argument("--config", default=None, help="Path to a YAML config file (optional)")
    ap.add_argument("--out", default=None, help="Directory for report.txt, SUMMARY.md and fix.sql")
    ap.add_argument("--github", action="store_true", help="Read GitHub Action inputs (implied when GITHUB_ACTIONS=true)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    # options; None means "not given on the command line"
    ap.add_argument("--fail-on-drift", action="store_const", const=True, default=None, help="Exit 1 when drift is found")
    ap.add_argument("--normalize-types", action="store_const", const=True, default=None,
                    help="Ignore cosmetic type differences such as integer display widths")
    ap.add_argument("--comment", action="store_const", const=True, default=None,
                    help="Post the report as a pull request comment (GitHub Actions)")
    ap.add_argument("--connect-timeout", type=int, default=None, help="Connection timeout in seconds (default: 10)")

    ap.add_argument(
        "--include",
        action="append",
        default=[],
        help="Include table pattern (repeatable). SQL LIKE (%% _) or regex via re:... e.g. --include 'order%%'",
    )
    ap.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Exclude table pattern (repeatable). SQL LIKE (%% _) or regex via re:... e.g. --exclude 'tmp_%%'",
    )

    for side in ("dev", "main"):
        ap.add_argument(f"--{side}-host", default=None)
        ap.add_argument(f"--{side}-port", default=None)
        ap.add_argument(f"--{side}-user", default=None)
        ap.add_argument(f"--{side}-password", default=None)
        ap.add_argument(f"--{side}-database", default=None)
        ap.add_argument(f"--{side}-ssl", default=None, help="true/false")
        ap.add_argument(f"--{side}-ssl-ca", default=None, help="CA certificate PEM content")

    return ap


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def exit_code(result: ComparisonResult, fail_on_drift: bool) -> int:
    """Return the process exit code for a completed comparison."""
    if fail_on_drift and not result.is_in_sync:
        return 1
    return 0


def result_outputs(result: ComparisonResult) -> dict:
    outputs = {"status": "in-sync" if result.is_in_sync else "drift", "in-sync": str(result.is_in_sync).lower()}
    outputs.update({k: str(v) for k, v in result.counts().items()})
    return outputs


def compare(settings: Settings, reporter: ConsoleReporter) -> tuple:
    """Connect to both databases, diff them and build the fix script.

    Both connections are closed before returning, on success or failure.

    Returns
    -------
    tuple
        ``(ComparisonResult, list of ScriptSection)``
    """
    tf = settings.table_filter
    table_filter = None
    if tf.include or tf.exclude:
        table_filter = partial(filter_tables, include=tf.include, exclude=tf.exclude, case_sensitive=tf.case_sensitive)

    print("🚀 Connecting to databases (read-only)...")
    with ExitStack() as stack:
        main_conn = stack.enter_context(closing(connect(settings.main, settings.options.connect_timeout)))
        dev_conn = stack.enter_context(closing(connect(settings.dev, settings.options.connect_timeout)))
        print("✅ Connected to both databases")
        print()

        dev = CatalogReader(dev_conn, "dev")
        main = CatalogReader(main_conn, "main")

        print("🔍 Checking what dev has that main is missing...")
        print()
        result = diff_schemas(
            dev,
            main,
            sink=reporter,
            table_filter=table_filter,
            normalize_types=settings.options.normalize_types,
        )
        sections = corrective_statements(result, dev)
    log.debug("connections closed")
    return result, sections


def _comment_target(settings: Settings, env: Mapping[str, str]) -> Optional[tuple]:
    """Return ``(token, repository, number)`` if a PR comment can be posted."""
    repository = env.get("GITHUB_REPOSITORY")
    number_input = github.get_input("pr-number", env)
    number = int(number_input) if number_input and number_input.isdigit() else github.pull_request_number(env)
    missing = [
        name
        for name, value in (("token", settings.github_token), ("GITHUB_REPOSITORY", repository), ("pull request number", number))
        if not value
    ]
    if missing:
        print(f"WARNING: skipping PR comment, missing {', '.join(missing)}", file=sys.stderr)
        return None
    return settings.github_token, repository, number


def post_comment(settings: Settings, body: str, env: Mapping[str, str]) -> None:
    target = _comment_target(settings, env)
    if target is None:
        return
    token, repository, number = target
    try:
        url = github.post_pr_comment(body, token, repository, number, env.get("GITHUB_API_URL", github.DEFAULT_API_URL))
    except NotificationError as exc:
        print(f"WARNING: {exc}", file=sys.stderr)
        return
    print(f"💬 Posted report to pull request #{number} {url}".rstrip())


def header_lines(settings: Settings) -> List[str]:
    lines = [f"- {settings.dev.describe()}", f"- {settings.main.describe()}"]
    tf = settings.table_filter
    if tf.include or tf.exclude:
        lines.append(f"- Table filters: include={tf.include or '[]'} exclude={tf.exclude or '[]'}")
    if settings.options.normalize_types:
        lines.append("- Type normalization: on")
    return lines


def publish(
    settings: Settings,
    result: ComparisonResult,
    sections: Sequence[ScriptSection],
    console_lines: Sequence[str],
    summary_text: str,
    env: Mapping[str, str],
) -> None:
    """Hand the result to every configured output."""
    github.set_outputs(result_outputs(result), env)

    if settings.out_dir is not None:
        out = settings.out_dir
        write_text(out / "report.txt", "\n".join(console_lines) + "\n" + summary_text)
        write_text(out / "fix.sql", render_sql_script(list(sections)))
        generate_summary_md(out, result, sections, header_lines(settings))
        print(f"Report : {out / 'report.txt'}")
        print(f"Summary: {out / 'SUMMARY.md'}")
        print(f"Fix SQL: {out / 'fix.sql'}")

    if settings.github:
        github.append_step_summary(render_summary_md(result, sections, header_lines(settings)), env)
        if settings.options.comment:
            post_comment(settings, render_pr_comment(result, sections, console_lines), env)


def report_failure(error: SchemaCheckError, settings: Optional[Settings], env: Mapping[str, str]) -> None:
    """Surface a fatal error separately from drift notifications."""
    print(f"❌ Error: {error}", file=sys.stderr)
    github.set_outputs({"status": "failed", "error-type": error.kind}, env)
    if settings is None and not github.in_github_actions(env):
        return
    if settings is not None and not settings.github:
        return
    body = render_failure_md(error)
    github.append_step_summary(body, env)
    if settings is not None and settings.options.comment:
        post_comment(settings, body, env)


def run(settings: Settings, env: Optional[Mapping[str, str]] = None) -> int:
    """Run one comparison and publish it. Returns the exit code."""
    env = os.environ if env is None else env
    reporter = ConsoleReporter()
    try:
        result, sections = compare(settings, reporter)
    except SchemaCheckError as exc:
        report_failure(exc, settings, env)
        return 1

    summary_text = render_console_summary(result, sections)
    print(summary_text, end="")
    publish(settings, result, sections, reporter.lines, summary_text, env)
    return exit_code(result, settings.options.fail_on_drift)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI entry-point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        settings = load_settings(args)
    except SchemaCheckError as exc:
        report_failure(exc, None, os.environ)
        return 1
    return run(settings)


if __name__ == "__main__":
    if sys.version_info < (3, 10):
        raise SystemExit("Python 3.10+ required.")
    raise SystemExit(main())
