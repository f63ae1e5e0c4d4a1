"""Typed outcome of a single native call.

The execution layer captures every native call as ``Ok`` or ``Err`` while
holding the session lock, then settles it (reconnect on a transient error,
re‑raise) after the lock is released.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from ensuredb.core.exceptions import DatabaseError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant."""

    value: T

    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    """Failure variant carrying the classified database error."""

    error: DatabaseError

    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
