"""
utils
=====

Small, shared utilities used across the codebase.

This module intentionally contains only low-level helpers that are safe to
import from anywhere (no database calls, no heavy imports).

Functions
---------
- :func:`quote_ident`: backtick-quote a MySQL identifier.
- :func:`as_bool`: parse the loose boolean spellings used in YAML, env vars and
  action inputs.
- :func:`write_text`: write UTF-8 text with normalized newlines.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n", ""}


def quote_ident(name: str) -> str:
    """Return *name* quoted as a MySQL identifier.

    Embedded backticks are doubled, as MySQL requires.

    Examples
    --------
    >>> quote_ident("users")
    '`users`'
    >>> quote_ident("odd`name")
    '`odd``name`'
    """
    return "`" + name.replace("`", "``") + "`"


def as_bool(value: Any, default: bool = False) -> bool:
    """Interpret *value* as a boolean.

    ``None`` yields *default*. Strings are matched case-insensitively against
    the usual spellings (``true``/``false``, ``yes``/``no``, ``1``/``0``,
    ``on``/``off``). Anything unrecognized raises :class:`ValueError`.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def write_text(path: Path, content: str) -> None:
    """Write UTF-8 text to *path* with normalized newlines."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    path.write_text(content, encoding="utf-8")
