"""Top‑level client factory.

Provides the ``Client`` factory class that creates sessions sharing one set of
retry settings.

Usage::

    from ensuredb import Client

    db = Client(retry_delay=10)

    with db.ora("scott", "tiger", "db.example.com/ORCLPDB1") as session:
        session.ensure_execute_update("DELETE FROM outbox WHERE sent = 1")

    session = db.my("app", "secret", "db.internal/app")
    session.connect(retry_forever=False)
    session.execute("TRUNCATE TABLE scratch")
    session.close()
"""

from __future__ import annotations

import logging
from typing import Any

from ensuredb.core.connection import RETRY_DELAY, STATEMENT_CACHE_SIZE
from ensuredb.mysql import MySQLSession
from ensuredb.oracle import OracleSession

logger = logging.getLogger("ensuredb.client")


class Client:
    """Factory that creates resilient sessions with shared settings.

    Parameters
    ----------
    retry_delay:
        Seconds between attempts of every retry loop (default 30).
    statement_cache_size:
        Driver statement cache size set on each new connection (default 20).
    """

    def __init__(
        self,
        *,
        retry_delay: float = RETRY_DELAY,
        statement_cache_size: int = STATEMENT_CACHE_SIZE,
    ) -> None:
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        if statement_cache_size < 0:
            raise ValueError("statement_cache_size must be >= 0")
        self._retry_delay = retry_delay
        self._statement_cache_size = statement_cache_size
        logger.debug(
            "Client created (retry_delay=%.1fs, statement_cache_size=%d)",
            retry_delay,
            statement_cache_size,
        )

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    @property
    def statement_cache_size(self) -> int:
        return self._statement_cache_size

    # -- helpers -----------------------------------------------------------

    def _common_kwargs(self) -> dict[str, Any]:
        return {
            "retry_delay": self._retry_delay,
            "statement_cache_size": self._statement_cache_size,
        }

    # -- factory methods ---------------------------------------------------

    def ora(self, user: str, password: str, dsn: str) -> OracleSession:
        """Create an Oracle session.  Nothing is opened until ``.connect()``."""
        return OracleSession(user, password, dsn, **self._common_kwargs())

    def my(self, user: str, password: str, target: str) -> MySQLSession:
        """Create a MySQL session for ``host[:port]/database``."""
        return MySQLSession(user, password, target, **self._common_kwargs())
