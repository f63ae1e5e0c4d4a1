"""Scripted in-memory database used by the session tests."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from ensuredb.core.classifier import ORACLE_TRANSIENT_CODES
from ensuredb.core.exceptions import BatchError, BatchErrorEntry, DatabaseError
from ensuredb.core.native import StatementStatus
from ensuredb.core.session import Session


def _error(code: int) -> DatabaseError:
    return DatabaseError.from_code(code, f"ORA-{code:05d}: simulated failure", ORACLE_TRANSIENT_CODES)


class FakeDatabase:
    """Server-side state shared by every connection the fake session opens.

    Failures are scheduled per operation name (``prepare``, ``execute``,
    ``execute_query``, ``execute_update``, ``commit``, ``rollback``) and
    consumed one per call.  ``fail_fetch`` fails the fetch of a given
    1-based row number.
    """

    def __init__(self) -> None:
        self.results: dict[str, list[tuple[Any, ...]]] = {}
        self.update_counts: dict[str, int] = {}
        self.connect_failures: list[int] = []
        self.scheduled: dict[str, list[Any]] = {}
        self.fetch_failures: dict[int, list[int]] = {}
        self.connections: list[FakeConnection] = []
        self.statements: list[FakeStatement] = []
        self.executions: list[tuple[str, Any]] = []
        self.result_sets: list[FakeResultSet] = []
        self._failed_connects = 0

    @property
    def connect_calls(self) -> int:
        return len(self.connections) + self._failed_connects

    def fail(self, operation: str, *codes: int) -> None:
        self.scheduled.setdefault(operation, []).extend(codes)

    def fail_batch(self, *entries: BatchErrorEntry) -> None:
        self.scheduled.setdefault("execute", []).append(BatchError(list(entries)))

    def fail_fetch(self, row_number: int, code: int) -> None:
        self.fetch_failures.setdefault(row_number, []).append(code)

    def maybe_fail(self, operation: str) -> None:
        pending = self.scheduled.get(operation)
        if pending:
            failure = pending.pop(0)
            if isinstance(failure, Exception):
                raise failure
            raise _error(failure)

    def connect(self) -> FakeConnection:
        if self.connect_failures:
            self._failed_connects += 1
            raise _error(self.connect_failures.pop(0))
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection


class FakeResultSet:
    def __init__(self, database: FakeDatabase, rows: list[tuple[Any, ...]]) -> None:
        self._database = database
        self._rows = rows
        self._position = 0
        self.row: Optional[tuple[Any, ...]] = None
        self.columns = ["id", "name"]
        self.fetches = 0

    def next(self) -> bool:
        row_number = self._position + 1
        pending = self._database.fetch_failures.get(row_number)
        if pending:
            raise _error(pending.pop(0))
        self.fetches += 1
        if self._position >= len(self._rows):
            self.row = None
            return False
        self.row = self._rows[self._position]
        self._position += 1
        return True


class FakeStatement:
    def __init__(self, database: FakeDatabase, connection: FakeConnection, sql: str) -> None:
        self._database = database
        self._connection = connection
        self.sql = sql
        self.params: Any = None
        self.batch: Any = None
        self.autocommit = False
        self.closed = 0
        self.closed_result_sets: list[FakeResultSet] = []

    def bind(self, params: Any) -> None:
        self.params = params

    def bind_many(self, rows: Any) -> None:
        self.batch = list(rows)

    def set_autocommit(self, flag: bool) -> None:
        self.autocommit = flag

    def execute(self) -> StatementStatus:
        self._database.maybe_fail("execute")
        self._record()
        if self.sql in self._database.results:
            return StatementStatus.RESULT_SET_AVAILABLE
        return StatementStatus.UPDATE_COUNT_AVAILABLE

    def execute_query(self) -> FakeResultSet:
        self._database.maybe_fail("execute_query")
        self._record()
        result_set = FakeResultSet(self._database, list(self._database.results.get(self.sql, [])))
        self._database.result_sets.append(result_set)
        return result_set

    def execute_update(self) -> int:
        self._database.maybe_fail("execute_update")
        self._record()
        return self._database.update_counts.get(self.sql, 1)

    def close_result_set(self, result_set: FakeResultSet) -> None:
        self.closed_result_sets.append(result_set)

    def close(self) -> None:
        self.closed += 1

    def _record(self) -> None:
        self._database.executions.append((self.sql, self.batch if self.batch is not None else self.params))
        if self.autocommit:
            self._connection.commits += 1


class FakeConnection:
    def __init__(self, database: FakeDatabase) -> None:
        self._database = database
        self.cache_size: Optional[int] = None
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.close_error: Optional[Exception] = None

    def prepare(self, sql: str) -> FakeStatement:
        self._database.maybe_fail("prepare")
        statement = FakeStatement(self._database, self, sql)
        self._database.statements.append(statement)
        return statement

    def commit(self) -> None:
        self._database.maybe_fail("commit")
        self.commits += 1

    def rollback(self) -> None:
        self._database.maybe_fail("rollback")
        self.rollbacks += 1

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True

    def set_statement_cache_size(self, size: int) -> None:
        self.cache_size = size


class FakeSession(Session):
    _db_label = "Fake"

    def __init__(self, database: FakeDatabase, **kwargs: Any) -> None:
        kwargs.setdefault("retry_delay", 0)
        super().__init__("scott", "tiger", "fake-target", **kwargs)
        self.database = database

    def _connect_native(self, user: str, password: str, target: str) -> FakeConnection:
        return self.database.connect()


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def make_session(database: FakeDatabase):
    def _make(**kwargs: Any) -> FakeSession:
        return FakeSession(database, **kwargs)

    return _make


@pytest.fixture
def session(make_session) -> FakeSession:
    s = make_session()
    s.connect(retry_forever=False)
    return s
