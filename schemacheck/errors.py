"""
errors
======

Exception types raised by the checker.

Every fatal error is a :class:`SchemaCheckError`. The CLI maps them all to exit
code 1, but keeps the kind so connectivity problems can be told apart from
broken queries in logs and notifications.
"""

from __future__ import annotations

from typing import Optional


class SchemaCheckError(Exception):
    """Base class for checker errors.

    Parameters
    ----------
    message:
        Human readable description.
    side:
        Which database the error relates to (``"dev"`` or ``"main"``), if any.
    operation:
        The operation that failed (e.g. ``"list_tables"``), if any.
    """

    kind = "error"

    def __init__(self, message: str, side: Optional[str] = None, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.side = side
        self.operation = operation

    def __str__(self) -> str:
        context = []
        if self.side:
            context.append(self.side)
        if self.operation:
            context.append(self.operation)
        if context:
            return f"[{' '.join(context)}] {self.message}"
        return self.message


class ConfigurationError(SchemaCheckError):
    """A required setting is missing or malformed. Raised before any I/O."""

    kind = "configuration"


class DatabaseConnectionError(SchemaCheckError):
    """A database session could not be established, or was lost."""

    kind = "connection"


class CatalogQueryError(SchemaCheckError):
    """A metadata query failed on an established session."""

    kind = "query"


class NotificationError(SchemaCheckError):
    """Posting a pull request comment failed."""

    kind = "notification"
