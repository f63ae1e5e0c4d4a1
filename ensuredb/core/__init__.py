"""ensuredb core: database‑agnostic resilience layer.

This package provides the foundation for every adapter:

* ConnectionManager: owns the connection, reconnects, invalidates handles
* ExecutionWrapper: single‑attempt execution that reconnects on a lost session
* EnsureExecutor: retry‑until‑success execution with resumable queries
* Session: public surface with commit/rollback passthrough
* ResourceRegistry: live statement/result‑set bookkeeping per generation
* Error classifier and exception hierarchy

Adapters (oracle, mysql) subclass Session and implement ``_connect_native``.
"""

from __future__ import annotations

from ensuredb.core.classifier import (
    MYSQL_TRANSIENT_CODES,
    ORACLE_TRANSIENT_CODES,
    ErrorKind,
    classify,
    is_transient,
    make_exception_string,
    make_simple_error_message,
)
from ensuredb.core.connection import RETRY_DELAY, STATEMENT_CACHE_SIZE, ConnectionManager
from ensuredb.core.ensure import EnsureExecutor
from ensuredb.core.exceptions import (
    BatchError,
    BatchErrorEntry,
    ConnectionEstablishError,
    DatabaseError,
    EnsureDBError,
    FatalDatabaseError,
    SessionClosedError,
    StaleHandleError,
    TransientConnectionError,
)
from ensuredb.core.executor import ExecutionWrapper
from ensuredb.core.handles import ResultSet, Statement
from ensuredb.core.native import NativeConnection, NativeResultSet, NativeStatement, StatementStatus
from ensuredb.core.registry import ResourceRegistry
from ensuredb.core.session import Session

__all__ = [
    # Session layers
    "ConnectionManager",
    "ExecutionWrapper",
    "EnsureExecutor",
    "Session",
    # Handles
    "ResourceRegistry",
    "Statement",
    "ResultSet",
    # Native client interface
    "NativeConnection",
    "NativeStatement",
    "NativeResultSet",
    "StatementStatus",
    # Classification
    "ErrorKind",
    "classify",
    "is_transient",
    "make_exception_string",
    "make_simple_error_message",
    "ORACLE_TRANSIENT_CODES",
    "MYSQL_TRANSIENT_CODES",
    # Configuration defaults
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
