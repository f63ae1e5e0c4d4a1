"""Oracle session — resilient session over a native ``python-oracledb`` connection."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from ensuredb.core.classifier import ORACLE_TRANSIENT_CODES
from ensuredb.core.exceptions import (
    BatchError,
    BatchErrorEntry,
    ConnectionEstablishError,
    DatabaseError,
)
from ensuredb.core.native import Params, StatementStatus
from ensuredb.core.session import Session

logger = logging.getLogger("ensuredb.oracle")

# Thin mode reports some disconnects without an ORA code.
_THIN_MODE_CODES = {
    "DPY-1001": 3114,  # not connected to database
    "DPY-4011": 3113,  # the database or network closed the connection
}


def _database_error(exc: Exception) -> DatabaseError:
    """Convert an ``oracledb.Error`` into the matching :class:`DatabaseError`."""
    error = exc.args[0] if exc.args else None
    code = getattr(error, "code", 0) or 0
    message = getattr(error, "message", None) or str(exc)
    full_code = getattr(error, "full_code", None)
    if not code and full_code in _THIN_MODE_CODES:
        code = _THIN_MODE_CODES[full_code]
    return DatabaseError.from_code(int(code), message, ORACLE_TRANSIENT_CODES)


@contextmanager
def _translate_errors() -> Iterator[None]:
    import oracledb  # type: ignore[import-untyped]

    try:
        yield
    except oracledb.Error as exc:
        raise _database_error(exc) from exc


class _OracleResultSet:
    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._row: Optional[tuple[Any, ...]] = None

    @property
    def row(self) -> Optional[tuple[Any, ...]]:
        return self._row

    @property
    def columns(self) -> list[str]:
        return [d[0] for d in self._cursor.description or ()]

    def next(self) -> bool:
        with _translate_errors():
            self._row = self._cursor.fetchone()
        return self._row is not None


class _OracleStatement:
    """Prepared cursor; parameters are held until execution."""

    def __init__(self, connection: Any, sql: str) -> None:
        self._connection = connection
        with _translate_errors():
            self._cursor = connection.cursor()
            self._cursor.prepare(sql)
        self._params: Optional[Params] = None
        self._batch: Optional[list[Params]] = None
        self._autocommit = False

    def bind(self, params: Params) -> None:
        self._params = params
        self._batch = None

    def bind_many(self, rows: Sequence[Params]) -> None:
        self._batch = list(rows)
        self._params = None

    def set_autocommit(self, flag: bool) -> None:
        self._autocommit = flag

    def execute(self) -> StatementStatus:
        self._run()
        if self._batch is None and self._cursor.description is not None:
            return StatementStatus.RESULT_SET_AVAILABLE
        return StatementStatus.UPDATE_COUNT_AVAILABLE

    def execute_query(self) -> _OracleResultSet:
        self._run()
        return _OracleResultSet(self._cursor)

    def execute_update(self) -> int:
        self._run()
        return self._cursor.rowcount

    def close_result_set(self, result_set: _OracleResultSet) -> None:
        # The cursor is shared with the statement; it is closed with it.
        pass

    def close(self) -> None:
        with _translate_errors():
            self._cursor.close()

    def _run(self) -> None:
        with _translate_errors():
            if self._batch is not None:
                self._cursor.executemany(None, self._batch, batcherrors=True)
                failures = self._cursor.getbatcherrors()
                if failures:
                    # Rows that succeeded would be committed again by a retry.
                    if self._autocommit:
                        self._connection.rollback()
                    raise BatchError(
                        [BatchErrorEntry(e.offset, e.code, e.message) for e in failures]
                    )
            elif self._params is not None:
                self._cursor.execute(None, self._params)
            else:
                self._cursor.execute(None)
            if self._autocommit:
                self._connection.commit()


class _OracleConnection:
    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def prepare(self, sql: str) -> _OracleStatement:
        return _OracleStatement(self._connection, sql)

    def commit(self) -> None:
        with _translate_errors():
            self._connection.commit()

    def rollback(self) -> None:
        with _translate_errors():
            self._connection.rollback()

    def close(self) -> None:
        with _translate_errors():
            self._connection.close()

    def set_statement_cache_size(self, size: int) -> None:
        self._connection.stmtcachesize = size


class OracleSession(Session):
    """Resilient session over ``python-oracledb``.

    Usage::

        session = OracleSession("scott", "tiger", "db.example.com:1521/ORCLPDB1")
        session.connect()
        count = session.ensure_execute_update("UPDATE jobs SET state = 'done'")
        session.close()

        # Or with context manager:
        with OracleSession(...) as session:
            session.execute_query("SELECT id FROM jobs", on_row)
    """

    _db_label = "Oracle"
    _transient_codes = ORACLE_TRANSIENT_CODES

    def __init__(self, user: str, password: str, dsn: str, **kwargs: Any) -> None:
        super().__init__(user, password, dsn, **kwargs)

    # -- ConnectionManager hooks -------------------------------------------

    def _connect_native(self, user: str, password: str, target: str) -> _OracleConnection:
        try:
            import oracledb  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ConnectionEstablishError(
                "oracledb is required for Oracle support. "
                "Install it with: pip install ensuredb[oracle]"
            ) from exc

        with _translate_errors():
            conn = oracledb.connect(user=user, password=password, dsn=target)
        logger.debug("Oracle connection opened (dsn=%s)", target)
        return _OracleConnection(conn)
