"""Abstract connection manager that every database session inherits from.

``ConnectionManager`` owns the single native connection of a session:

    connect()   → no‑op when connected, else reconnect()
    reconnect() → drop connection → invalidate registry → open connection
                  (once, or forever with a fixed back‑off)
    close()     → rollback → close native connection; the session stays closed

Subclasses only implement one hook:
    ``_connect_native`` — open and return a :class:`NativeConnection`

and may override ``_transient_codes`` with the error codes their driver
reports when the session is lost.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from ensuredb.core.classifier import ORACLE_TRANSIENT_CODES, ErrorKind, classify
from ensuredb.core.exceptions import ConnectionEstablishError, DatabaseError, SessionClosedError
from ensuredb.core.handles import Statement
from ensuredb.core.native import NativeConnection
from ensuredb.core.registry import ResourceRegistry

logger = logging.getLogger("ensuredb.core.connection")

RETRY_DELAY: float = 30.0
STATEMENT_CACHE_SIZE: int = 20


class ConnectionManager(ABC):
    """Abstract base owning the connection and its resource registry.

    Parameters
    ----------
    user:
        Database user name.
    password:
        Database password.  Never logged.
    target:
        Connection descriptor, interpreted by the adapter only.
    retry_delay:
        Seconds to sleep between attempts of every retry loop.
    statement_cache_size:
        Size of the driver's statement cache, set on each new connection.
    """

    # Subclasses should set this to a human‑friendly label for logging.
    _db_label: str = "unknown"
    _transient_codes: frozenset[int] = ORACLE_TRANSIENT_CODES

    def __init__(
        self,
        user: str,
        password: str,
        target: str,
        *,
        retry_delay: float = RETRY_DELAY,
        statement_cache_size: int = STATEMENT_CACHE_SIZE,
    ) -> None:
        self._user = user
        self._password = password
        self._target = target
        self._retry_delay = retry_delay
        self._statement_cache_size = statement_cache_size

        self._connection: Optional[NativeConnection] = None
        self._registry = ResourceRegistry()
        self._closed = False
        self._lock = threading.Lock()

    # -- abstract hooks (subclass contract) --------------------------------

    @abstractmethod
    def _connect_native(self, user: str, password: str, target: str) -> NativeConnection:
        """Open and **return** a native connection.

        Raise :class:`DatabaseError` (or :class:`ConnectionEstablishError`)
        when the connection cannot be opened.
        """

    # -- properties --------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def generation(self) -> int:
        return self._registry.generation

    @property
    def registry(self) -> ResourceRegistry:
        return self._registry

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    @property
    def transient_codes(self) -> frozenset[int]:
        return self._transient_codes

    # -- public API --------------------------------------------------------

    def connect(self, retry_forever: bool = True) -> None:
        """Open the connection unless one is already open."""
        with self._lock:
            if self._connection is None:
                self._reconnect_locked(retry_forever)

    def reconnect(self, retry_forever: bool = True) -> None:
        """Replace the connection unconditionally, invalidating every handle."""
        with self._lock:
            self._reconnect_locked(retry_forever)

    def close(self) -> None:
        """Roll back and release the connection.  Never raises."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            connection, self._connection = self._connection, None
            self._registry.invalidate()

        if connection is None:
            return

        try:
            connection.rollback()
        except Exception:
            logger.warning("Rollback on close failed for %s session", self._db_label, exc_info=True)

        try:
            connection.close()
        except Exception:
            logger.warning("Error closing native %s connection", self._db_label, exc_info=True)

        logger.info("%s session closed", self._db_label)

    # -- context manager ---------------------------------------------------

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    # -- private -----------------------------------------------------------

    def _reconnect_locked(self, retry_forever: bool) -> None:
        """Caller must hold ``self._lock``; it is released only while sleeping."""
        self._check_open_locked()
        # The old connection is presumed unusable; drop it without closing.
        self._connection = None
        self._registry.invalidate()

        attempt = 0
        while self._connection is None:
            attempt += 1
            try:
                connection = self._connect_native(self._user, self._password, self._target)
                connection.set_statement_cache_size(self._statement_cache_size)
            except (DatabaseError, ConnectionEstablishError) as exc:
                logger.error(
                    "Failed to connect to %s (target=%s, attempt=%d): %s",
                    self._db_label,
                    self._target,
                    attempt,
                    exc,
                )
                if not retry_forever:
                    if isinstance(exc, ConnectionEstablishError):
                        raise
                    raise ConnectionEstablishError(
                        f"failed to connect to {self._db_label}: {exc}"
                    ) from exc
                # Sleep without the lock; another thread may connect meanwhile.
                self._lock.release()
                try:
                    time.sleep(self._retry_delay)
                finally:
                    self._lock.acquire()
                self._check_open_locked()
                continue

            self._connection = connection

        logger.info(
            "%s session connected (target=%s, generation=%d)",
            self._db_label,
            self._target,
            self._registry.generation,
        )

    def _check_open_locked(self) -> None:
        if self._closed:
            raise SessionClosedError(f"{self._db_label} session has already been closed")

    def _require_connection_locked(self) -> NativeConnection:
        """Return the live connection, opening it once if absent.  Caller holds the lock."""
        if self._connection is None:
            self._reconnect_locked(retry_forever=False)
        assert self._connection is not None
        return self._connection

    def _recover(self, error: DatabaseError, statement: Optional[Statement] = None) -> None:
        """Reconnect once after a transient *error*.

        Skipped when *statement* belongs to an older connection generation:
        somebody already replaced the connection it failed on.
        """
        if classify(error.code, self._transient_codes) is not ErrorKind.TRANSIENT:
            return
        with self._lock:
            if self._closed:
                return
            if statement is not None and not self._registry.contains(statement):
                logger.debug(
                    "Skipping reconnect: %r is stale (generation=%d)",
                    statement,
                    self._registry.generation,
                )
                return
            logger.warning(
                "%s connection lost (code=%d), reconnecting: %s",
                self._db_label,
                error.code,
                error.message,
            )
            try:
                self._reconnect_locked(retry_forever=False)
            except ConnectionEstablishError as exc:
                raise exc from error
