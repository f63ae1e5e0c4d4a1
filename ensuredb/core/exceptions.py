"""Custom exceptions for the ensuredb session layer.

All exceptions inherit from EnsureDBError to allow catching any library error.
Passwords are never included in exception messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional, Sequence

from ensuredb.core.classifier import ORACLE_TRANSIENT_CODES, ErrorKind, classify


class EnsureDBError(Exception):
    """Base exception for all ensuredb errors."""


class DatabaseError(EnsureDBError):
    """Raised when the database reports an error carrying a numeric code."""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    @classmethod
    def from_code(
        cls,
        code: int,
        message: str,
        transient_codes: AbstractSet[int] = ORACLE_TRANSIENT_CODES,
    ) -> DatabaseError:
        """Build the subclass matching the classification of *code*."""
        if classify(code, transient_codes) is ErrorKind.TRANSIENT:
            return TransientConnectionError(code, message)
        return FatalDatabaseError(code, message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class TransientConnectionError(DatabaseError):
    """Raised when the session or network was lost; eligible for reconnect."""

    kind = ErrorKind.TRANSIENT


class FatalDatabaseError(DatabaseError):
    """Raised for any database error that a reconnect would not cure."""


@dataclass(frozen=True, slots=True)
class BatchErrorEntry:
    """One failed row of a batch execution."""

    offset: int
    code: int
    message: str


class BatchError(FatalDatabaseError):
    """Raised when some rows of a batch execution failed."""

    def __init__(self, errors: Sequence[BatchErrorEntry], message: Optional[str] = None) -> None:
        self.errors = list(errors)
        first = self.errors[0] if self.errors else None
        super().__init__(
            first.code if first else 0,
            message or f"{len(self.errors)} batch row(s) failed"
            + (f"; first at offset {first.offset}: {first.message}" if first else ""),
        )


class StaleHandleError(EnsureDBError):
    """Raised when a statement or result set no longer belongs to the live connection."""


class ConnectionEstablishError(EnsureDBError):
    """Raised when a connection could not be opened without retrying."""


class SessionClosedError(EnsureDBError):
    """Raised when a closed session is asked to connect or run a statement."""
