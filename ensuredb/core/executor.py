"""Single‑attempt execution on top of the connection manager.

Every native call runs under the session lock and is captured as an
:class:`~ensuredb.core.result.Ok` or :class:`~ensuredb.core.result.Err`.
The outcome is settled after the lock is released: a transient error on a
live statement triggers one bounded reconnect, then the original error is
re‑raised.  Nothing here retries the statement itself; see
:mod:`ensuredb.core.ensure` for that.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from ensuredb.core.classifier import make_exception_string
from ensuredb.core.connection import ConnectionManager
from ensuredb.core.exceptions import DatabaseError, StaleHandleError
from ensuredb.core.handles import ResultSet, Statement
from ensuredb.core.native import StatementStatus
from ensuredb.core.result import Err, Ok, Result

logger = logging.getLogger("ensuredb.core.executor")

T = TypeVar("T")

# Called once per step of a query; advances with ``session.next(result_set)``
# and returns False to stop.
OnRow = Callable[["ExecutionWrapper", ResultSet], bool]


class ExecutionWrapper(ConnectionManager):
    """Statement and result‑set primitives that reconnect on a lost session."""

    # -- statements --------------------------------------------------------

    def create_statement(self, sql: str) -> Statement:
        """Prepare *sql* on the live connection and register the new statement."""
        with self._lock:
            connection = self._require_connection_locked()
            outcome = self._call(lambda: connection.prepare(sql))
            if outcome.is_ok():
                statement = Statement(outcome.value, sql, self._registry.generation)
                self._registry.register(statement)
                outcome = Ok(statement)
        return self._settle(outcome)

    def terminate_statement(self, statement: Optional[Statement]) -> None:
        """Close *statement*; a no‑op when it is ``None`` or no longer registered."""
        if statement is None:
            return
        with self._lock:
            if not self._registry.contains(statement):
                return
            self._registry.unregister(statement)
            try:
                statement.native.close()
            except DatabaseError as exc:
                logger.warning("Failed to terminate statement: %s", make_exception_string(exc))

    def execute_statement(self, statement: Statement) -> StatementStatus:
        with self._lock:
            self._check_live_locked(statement)
            outcome = self._call(statement.native.execute)
        return self._settle(outcome, statement)

    def execute_query_statement(self, statement: Statement) -> ResultSet:
        """Run *statement* as a query and register the resulting cursor."""
        with self._lock:
            self._check_live_locked(statement)
            outcome = self._call(statement.native.execute_query)
            if outcome.is_ok():
                result_set = ResultSet(outcome.value, statement, statement.generation)
                self._registry.register(result_set)
                outcome = Ok(result_set)
        return self._settle(outcome, statement)

    def execute_update_statement(self, statement: Statement) -> int:
        with self._lock:
            self._check_live_locked(statement)
            outcome = self._call(statement.native.execute_update)
        return self._settle(outcome, statement)

    # -- result sets -------------------------------------------------------

    def next(self, result_set: ResultSet) -> bool:
        """Advance *result_set* to its next row.  Returns ``False`` when exhausted.

        Meant to be called from inside an ``on_row`` callback.
        """
        with self._lock:
            self._check_live_locked(result_set)
            outcome = self._call(result_set.native.next)
        return self._settle(outcome, result_set.statement)

    def close_result_set(self, result_set: Optional[ResultSet]) -> None:
        """Close *result_set* and terminate the statement that produced it."""
        if result_set is None:
            return
        with self._lock:
            if not self._registry.contains(result_set):
                return
            statement = result_set.statement
            self._registry.unregister(result_set)
            try:
                statement.native.close_result_set(result_set.native)
            except DatabaseError as exc:
                logger.warning("Failed to close result set: %s", make_exception_string(exc))
        self.terminate_statement(statement)

    # -- SQL text convenience ----------------------------------------------

    def execute(self, sql: str) -> StatementStatus:
        """Execute *sql* once.  Reconnects on a lost session, then re‑raises."""
        logger.debug("execute: %s", sql)
        statement = self.create_statement(sql)
        try:
            return self.execute_statement(statement)
        finally:
            self.terminate_statement(statement)

    def execute_query(self, sql: str, on_row: OnRow) -> None:
        """Run *sql* once and drive ``on_row(self, result_set)`` until it returns False."""
        logger.debug("execute_query: %s", sql)
        statement = self.create_statement(sql)
        try:
            result_set = self.execute_query_statement(statement)
            while on_row(self, result_set):
                pass
            self.close_result_set(result_set)
        finally:
            self.terminate_statement(statement)

    def execute_update(self, sql: str) -> int:
        """Execute *sql* once and return the affected row count."""
        logger.debug("execute_update: %s", sql)
        statement = self.create_statement(sql)
        try:
            return self.execute_update_statement(statement)
        finally:
            self.terminate_statement(statement)

    # -- private -----------------------------------------------------------

    @staticmethod
    def _call(fn: Callable[[], T]) -> Result[T]:
        try:
            return Ok(fn())
        except DatabaseError as exc:
            return Err(exc)

    def _settle(self, outcome: Result[T], statement: Optional[Statement] = None) -> T:
        """Return the value of *outcome* or recover from and re‑raise its error."""
        if isinstance(outcome, Ok):
            return outcome.value
        self._recover(outcome.error, statement)
        raise outcome.error

    def _check_live_locked(self, handle) -> None:
        if not self._registry.contains(handle):
            raise StaleHandleError(
                f"{handle!r} does not belong to the live connection "
                f"(generation={self._registry.generation})"
            )
