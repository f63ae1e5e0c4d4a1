"""MySQL session — resilient session over a native ``pymysql`` connection."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from ensuredb.core.classifier import MYSQL_TRANSIENT_CODES
from ensuredb.core.exceptions import ConnectionEstablishError, DatabaseError
from ensuredb.core.native import Params, StatementStatus
from ensuredb.core.session import Session

logger = logging.getLogger("ensuredb.mysql")

_DEFAULT_PORT = 3306
# pymysql raises InterfaceError(0, "") on a connection it already saw die.
_CLOSED_CONNECTION_CODE = 2006


def parse_target(target: str) -> tuple[str, int, str]:
    """Split ``host[:port]/database`` into its parts."""
    address, sep, database = target.partition("/")
    if not sep or not database:
        raise ValueError(f"MySQL target must look like host[:port]/database, got {target!r}")
    host, _, port = address.partition(":")
    if not host:
        raise ValueError(f"MySQL target is missing a host: {target!r}")
    try:
        return host, int(port) if port else _DEFAULT_PORT, database
    except ValueError:
        raise ValueError(f"MySQL target has an invalid port: {target!r}") from None


def _database_error(exc: Exception) -> DatabaseError:
    import pymysql  # type: ignore[import-untyped]

    code = exc.args[0] if exc.args and isinstance(exc.args[0], int) else 0
    message = str(exc.args[1]) if len(exc.args) > 1 else str(exc)
    if isinstance(exc, pymysql.err.InterfaceError) and not code:
        code = _CLOSED_CONNECTION_CODE
        message = message or "connection already closed"
    return DatabaseError.from_code(code, message, MYSQL_TRANSIENT_CODES)


@contextmanager
def _translate_errors() -> Iterator[None]:
    import pymysql  # type: ignore[import-untyped]

    try:
        yield
    except pymysql.err.MySQLError as exc:
        raise _database_error(exc) from exc


class _MySQLResultSet:
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


class _MySQLStatement:
    """SQL text plus parameters; pymysql has no server‑side prepare."""

    def __init__(self, connection: Any, sql: str) -> None:
        self._connection = connection
        self._sql = sql
        with _translate_errors():
            self._cursor = connection.cursor()
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

    def execute_query(self) -> _MySQLResultSet:
        self._run()
        return _MySQLResultSet(self._cursor)

    def execute_update(self) -> int:
        self._run()
        return self._cursor.rowcount

    def close_result_set(self, result_set: _MySQLResultSet) -> None:
        pass

    def close(self) -> None:
        with _translate_errors():
            self._cursor.close()

    def _run(self) -> None:
        with _translate_errors():
            if self._batch is not None:
                self._cursor.executemany(self._sql, self._batch)
            else:
                self._cursor.execute(self._sql, self._params)
            if self._autocommit:
                self._connection.commit()


class _MySQLConnection:
    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def prepare(self, sql: str) -> _MySQLStatement:
        return _MySQLStatement(self._connection, sql)

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
        # No client-side statement cache in pymysql.
        pass


class MySQLSession(Session):
    """Resilient session over ``pymysql``.

    The target has the form ``host[:port]/database``.

    Usage::

        session = MySQLSession("app", "secret", "db.internal:3306/app")
        session.connect()
        session.ensure_execute("DELETE FROM sessions WHERE expired = 1")
        session.close()

        # Or with context manager:
        with MySQLSession(...) as session:
            session.execute_update("UPDATE counters SET n = n + 1")
    """

    _db_label = "MySQL"
    _transient_codes = MYSQL_TRANSIENT_CODES

    def __init__(self, user: str, password: str, target: str, **kwargs: Any) -> None:
        parse_target(target)
        super().__init__(user, password, target, **kwargs)

    # -- ConnectionManager hooks -------------------------------------------

    def _connect_native(self, user: str, password: str, target: str) -> _MySQLConnection:
        try:
            import pymysql  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ConnectionEstablishError(
                "pymysql is required for MySQL support. "
                "Install it with: pip install ensuredb[mysql]"
            ) from exc

        host, port, database = parse_target(target)
        with _translate_errors():
            conn = pymysql.connect(
                host=host,
                port=port,
                user=user,
                password=password,
                database=database,
                autocommit=False,
            )
        logger.debug("MySQL connection opened (host=%s:%d, database=%s)", host, port, database)
        return _MySQLConnection(conn)
