"""ensuredb — resilient database sessions that survive lost connections.

Quick start::

    from ensuredb import oracle

    with oracle("scott", "tiger", "db.example.com/ORCLPDB1") as session:
        # Fails fast: reconnects on a lost session, then re-raises.
        session.execute("UPDATE jobs SET state = 'queued'")

        # Blocks until it succeeds, retrying every 30 seconds.
        session.ensure_execute_update("DELETE FROM outbox WHERE sent = 1")

        def on_row(s, rs):
            if not s.next(rs):
                return False
            print(rs["id"])
            return True

        # Resumes after a failure by skipping rows already delivered.
        session.ensure_execute_query("SELECT id FROM jobs ORDER BY id", on_row)
"""

from __future__ import annotations

import logging
from typing import Any

from ensuredb.client import Client
from ensuredb.core import (
    RETRY_DELAY,
    STATEMENT_CACHE_SIZE,
    BatchError,
    BatchErrorEntry,
    ConnectionEstablishError,
    DatabaseError,
    EnsureDBError,
    ErrorKind,
    FatalDatabaseError,
    ResultSet,
    Session,
    SessionClosedError,
    StaleHandleError,
    Statement,
    StatementStatus,
    TransientConnectionError,
    classify,
    make_exception_string,
    make_simple_error_message,
)
from ensuredb.mysql import MySQLSession
from ensuredb.oracle import OracleSession

logger = logging.getLogger("ensuredb")


def oracle(user: str, password: str, dsn: str, **kwargs: Any) -> OracleSession:
    """Create an Oracle session.

    Parameters
    ----------
    user : str
        Database user.
    password : str
        Database password.
    dsn : str
        Oracle connect descriptor or Easy Connect string.
    **kwargs
        ``retry_delay`` and ``statement_cache_size`` overrides.

    Returns
    -------
    OracleSession
        Unconnected session; call ``connect()`` or use it as a context manager.

    Examples
    --------
    >>> from ensuredb import oracle
    >>> with oracle("scott", "tiger", "localhost/FREEPDB1") as session:
    ...     session.ensure_execute("BEGIN purge_outbox; END;")
    """
    return OracleSession(user, password, dsn, **kwargs)


def mysql(user: str, password: str, target: str, **kwargs: Any) -> MySQLSession:
    """Create a MySQL session.

    Parameters
    ----------
    user : str
        Database user.
    password : str
        Database password.
    target : str
        ``host[:port]/database``.
    **kwargs
        ``retry_delay`` and ``statement_cache_size`` overrides.

    Returns
    -------
    MySQLSession
        Unconnected session; call ``connect()`` or use it as a context manager.
    """
    return MySQLSession(user, password, target, **kwargs)


__all__ = [
    # Convenience functions
    "oracle",
    "mysql",
    # Factory and sessions
    "Client",
    "Session",
    "OracleSession",
    "MySQLSession",
    # Handles
    "Statement",
    "ResultSet",
    "StatementStatus",
    # Helpers
    "ErrorKind",
    "classify",
    "make_exception_string",
    "make_simple_error_message",
    "RETRY_DELAY",
    "STATEMENT_CACHE_SIZE",
    # Exceptions
    "EnsureDBError",
    "DatabaseError",
    "TransientConnectionError",
    "FatalDatabaseError",
    "BatchError",
    "BatchErrorEntry",
    "StaleHandleError",
    "SessionClosedError",
    "ConnectionEstablishError",
]

__version__ = "0.1.0"
