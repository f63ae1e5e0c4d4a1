"""Public session surface.

``Session`` adds best‑effort transaction passthrough to the execution layers.
It stays abstract: adapters such as :class:`ensuredb.oracle.OracleSession`
implement ``_connect_native``.
"""

from __future__ import annotations

import logging

from ensuredb.core.classifier import make_exception_string
from ensuredb.core.ensure import EnsureExecutor
from ensuredb.core.exceptions import ConnectionEstablishError

logger = logging.getLogger("ensuredb.core.session")


class Session(EnsureExecutor):
    """Resilient database session.

    Usage::

        session = OracleSession("scott", "tiger", "db.example.com/ORCLPDB1")
        session.connect()   # blocks until the database is reachable
        session.ensure_execute_update("DELETE FROM queue WHERE done = 1")
        session.close()

        # Or with context manager:
        with OracleSession(...) as session:
            session.execute("BEGIN refresh_stats; END;")
    """

    def commit(self) -> None:
        """Commit the current transaction.  Errors are logged, never raised."""
        self._end_transaction("commit")

    def rollback(self) -> None:
        """Roll back the current transaction.  Errors are logged, never raised."""
        self._end_transaction("rollback")

    # -- private -----------------------------------------------------------

    def _end_transaction(self, action: str) -> None:
        with self._lock:
            if self._connection is None:
                return
            outcome = self._call(getattr(self._connection, action))
        if outcome.is_ok():
            return

        logger.warning(
            "%s %s failed: %s", self._db_label, action, make_exception_string(outcome.error)
        )
        try:
            self._recover(outcome.error)
        except ConnectionEstablishError as exc:
            logger.error("Reconnect after failed %s did not succeed: %s", action, exc)

