"""Retry‑until‑success execution.

The ``ensure_*`` calls block on the calling thread until the statement
succeeds.  Each failed attempt terminates its statement, sleeps the session's
``retry_delay`` and starts over with a freshly prepared statement, so anything
a callback binds must be re‑applied on every attempt.

``ensure_execute_query`` resumes an interrupted query by re‑executing it and
skipping the rows already delivered.  That is only correct when the query
returns the same rows in the same order each time; with concurrent writers
rows can be skipped or delivered twice.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ensuredb.core.classifier import make_exception_string
from ensuredb.core.exceptions import (
    BatchError,
    ConnectionEstablishError,
    DatabaseError,
    SessionClosedError,
    StaleHandleError,
)
from ensuredb.core.executor import ExecutionWrapper, OnRow
from ensuredb.core.handles import Statement
from ensuredb.core.native import StatementStatus

logger = logging.getLogger("ensuredb.core.ensure")

OnCreateStatement = Callable[[Statement], None]
OnError = Callable[[Exception], None]
OnBatchError = Callable[[BatchError], None]

_RETRYABLE = (DatabaseError, ConnectionEstablishError)


class EnsureExecutor(ExecutionWrapper):
    """Blocking ``ensure_*`` calls layered on the single‑attempt primitives."""

    def ensure_execute(
        self,
        sql: str,
        *,
        on_create_statement: Optional[OnCreateStatement] = None,
        on_error: Optional[OnError] = None,
        on_batch_error: Optional[OnBatchError] = None,
    ) -> StatementStatus:
        """Execute *sql* with auto‑commit, retrying until it succeeds.

        ``on_create_statement`` may bind parameters on each fresh statement.
        Batch partial failures are reported to ``on_batch_error``, every other
        failure to ``on_error``.  A concurrent reconnect that invalidates the
        attempt's own statement is retried at once without a callback.
        """
        logger.debug("ensure_execute: %s", sql)
        attempt = 0
        while True:
            attempt += 1
            statement: Optional[Statement] = None
            try:
                statement = self.create_statement(sql)
                statement.set_autocommit(True)
                if on_create_statement is not None:
                    on_create_statement(statement)
                return self.execute_statement(statement)
            except StaleHandleError:
                self._log_stale("ensure_execute", attempt, statement)
                continue
            except BatchError as exc:
                if on_batch_error is not None:
                    on_batch_error(exc)
                self._log_retry("ensure_execute", attempt, exc)
            except _RETRYABLE as exc:
                if on_error is not None:
                    on_error(exc)
                self._log_retry("ensure_execute", attempt, exc)
            finally:
                self.terminate_statement(statement)
            time.sleep(self._retry_delay)

    def ensure_execute_update(self, sql: str, *, on_error: Optional[OnError] = None) -> int:
        """Execute *sql* with auto‑commit until it succeeds; return the row count."""
        logger.debug("ensure_execute_update: %s", sql)
        attempt = 0
        while True:
            attempt += 1
            statement: Optional[Statement] = None
            try:
                statement = self.create_statement(sql)
                statement.set_autocommit(True)
                return self.execute_update_statement(statement)
            except StaleHandleError:
                self._log_stale("ensure_execute_update", attempt, statement)
                continue
            except _RETRYABLE as exc:
                if on_error is not None:
                    try:
                        on_error(exc)
                    except Exception:
                        logger.exception("on_error callback raised")
                self._log_retry("ensure_execute_update", attempt, exc)
            finally:
                self.terminate_statement(statement)
            time.sleep(self._retry_delay)

    def ensure_execute_query(
        self,
        sql: str,
        on_row: OnRow,
        *,
        on_error: Optional[OnError] = None,
    ) -> None:
        """Run *sql* and drive *on_row* to completion, resuming after failures.

        ``on_row(session, result_set)`` advances the cursor itself with
        ``session.next(result_set)`` and returns False to stop.  After a
        failure the query is re‑executed and the rows already accepted by
        *on_row* are skipped before delivery resumes.
        """
        logger.debug("ensure_execute_query: %s", sql)
        delivered = 0
        attempt = 0
        while True:
            attempt += 1
            statement: Optional[Statement] = None
            try:
                statement = self.create_statement(sql)
                result_set = self.execute_query_statement(statement)

                rows_available = True
                for _ in range(delivered):
                    if not self.next(result_set):
                        rows_available = False
                        break
                if delivered:
                    logger.debug("Skipped %d previously delivered row(s)", delivered)

                while rows_available and on_row(self, result_set):
                    delivered += 1

                self.close_result_set(result_set)
                return
            except _RETRYABLE as exc:
                if on_error is not None:
                    on_error(exc)
                self._log_retry("ensure_execute_query", attempt, exc)
            except SessionClosedError:
                raise
            except Exception as exc:
                message = str(exc)
                if message:
                    logger.error("ensure_execute_query: %s", message)
                self._log_retry("ensure_execute_query", attempt, exc)
            finally:
                self.terminate_statement(statement)
            time.sleep(self._retry_delay)

    # -- private -----------------------------------------------------------

    def _log_stale(self, operation: str, attempt: int, statement: Optional[Statement]) -> None:
        # Another thread reconnected after this attempt prepared its statement.
        logger.warning(
            "%s attempt %d lost its statement to a concurrent reconnect, retrying: %r",
            operation,
            attempt,
            statement,
        )

    def _log_retry(self, operation: str, attempt: int, exc: Exception) -> None:
        logger.warning(
            "%s attempt %d failed, retrying in %.1fs: %s",
            operation,
            attempt,
            self._retry_delay,
            make_exception_string(exc),
        )
