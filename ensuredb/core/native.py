"""Interface of the underlying database client.

Adapters (``ensuredb.oracle``, ``ensuredb.mysql``) wrap a real driver in
objects satisfying these protocols.  Every failing call must raise a
:class:`~ensuredb.core.exceptions.DatabaseError` subclass so the session
layer can classify it by numeric code.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

Params = Union[Sequence[Any], Mapping[str, Any]]


class StatementStatus(Enum):
    """Outcome of :meth:`NativeStatement.execute`."""

    UNPREPARED = 0
    PREPARED = 1
    RESULT_SET_AVAILABLE = 2
    UPDATE_COUNT_AVAILABLE = 3


class NativeResultSet(Protocol):
    @property
    def row(self) -> Optional[tuple[Any, ...]]: ...

    @property
    def columns(self) -> list[str]: ...

    def next(self) -> bool: ...


class NativeStatement(Protocol):
    def bind(self, params: Params) -> None: ...

    def bind_many(self, rows: Sequence[Params]) -> None: ...

    def set_autocommit(self, flag: bool) -> None: ...

    def execute(self) -> StatementStatus: ...

    def execute_query(self) -> NativeResultSet: ...

    def execute_update(self) -> int: ...

    def close_result_set(self, result_set: NativeResultSet) -> None: ...

    def close(self) -> None: ...


class NativeConnection(Protocol):
    def prepare(self, sql: str) -> NativeStatement: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...

    def set_statement_cache_size(self, size: int) -> None: ...
