"""
auth
====

MySQL session helpers.

This module is responsible for turning a :class:`MySQLTarget` (credentials,
database name and TLS settings for one side of the comparison) into an open
PyMySQL connection.

The rest of the codebase only sees DB-API connections:

- input: :class:`~schemacheck.auth.MySQLTarget`
- output: a :class:`pymysql.connections.Connection` using ``DictCursor``

Driver errors raised while establishing the session are translated into
:class:`~schemacheck.errors.DatabaseConnectionError` so the caller can tell
connectivity failures apart from broken queries.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from typing import Optional

import pymysql
import pymysql.cursors

from .errors import ConfigurationError, DatabaseConnectionError

log = logging.getLogger(__name__)

DEFAULT_PORT = 3306
DEFAULT_CONNECT_TIMEOUT = 10


@dataclass(frozen=True)
class MySQLTarget:
    """Connection settings for one database.

    Parameters
    ----------
    label:
        Side of the comparison, ``"dev"`` (reference) or ``"main"`` (target).
    host, port, user, password, database:
        Usual MySQL connection parameters.
    ssl:
        Whether to negotiate TLS.
    ssl_ca:
        PEM content of a certificate authority to trust. Only used when
        ``ssl`` is on; the system trust store is used otherwise.
    """

    label: str
    host: str
    user: str
    password: str = field(repr=False)
    database: str
    port: int = DEFAULT_PORT
    ssl: bool = False
    ssl_ca: Optional[str] = field(default=None, repr=False)

    def describe(self) -> str:
        """Return a human-readable description for logs/reports."""
        tls = "on" if self.ssl else "off"
        return f"{self.label.upper()}: {self.user}@{self.host}:{self.port}/{self.database} ssl={tls}"


def build_ssl_context(target: MySQLTarget) -> Optional[ssl.SSLContext]:
    """Return the TLS context for *target*, or None when TLS is off.

    Raises
    ------
    ConfigurationError
        If ``ssl_ca`` is set but is not valid PEM data.
    """
    if not target.ssl:
        return None
    if not target.ssl_ca:
        return ssl.create_default_context()
    try:
        return ssl.create_default_context(cadata=target.ssl_ca)
    except (ssl.SSLError, ValueError) as exc:
        raise ConfigurationError(f"invalid CA certificate: {exc}", side=target.label) from exc


def connect(target: MySQLTarget, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT) -> pymysql.connections.Connection:
    """Open a read-only-use session to *target*.

    Parameters
    ----------
    target:
        The database to connect to.
    connect_timeout:
        Seconds to wait for the server handshake.

    Returns
    -------
    pymysql.connections.Connection
        A connection whose cursors return rows as dicts.

    Raises
    ------
    DatabaseConnectionError
        If the server cannot be reached, rejects the credentials, or the TLS
        handshake fails.
    """
    ctx = build_ssl_context(target)
    log.debug("connecting to %s", target.describe())
    try:
        conn = pymysql.connect(
            host=target.host,
            port=target.port,
            user=target.user,
            password=target.password,
            database=target.database,
            ssl=ctx,
            connect_timeout=connect_timeout,
            cursorclass=pymysql.cursors.DictCursor,
            charset="utf8mb4",
        )
    except pymysql.MySQLError as exc:
        raise DatabaseConnectionError(
            f"cannot connect to {target.host}:{target.port}/{target.database}: {exc}",
            side=target.label,
            operation="connect",
        ) from exc
    log.debug("connected to %s", target.label)
    return conn
