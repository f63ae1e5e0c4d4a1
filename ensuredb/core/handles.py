"""Statement and result‑set handles handed out to callers.

A handle pairs a native object with the connection generation it was created
under.  Handles compare by identity; validity is decided by the
:class:`~ensuredb.core.registry.ResourceRegistry`, never by the handle itself.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from ensuredb.core.native import NativeResultSet, NativeStatement, Params


class Statement:
    """Prepared statement owned by a session.

    Parameters set through :meth:`bind` / :meth:`bind_many` are applied when
    the statement is executed.
    """

    __slots__ = ("_native", "_sql", "_generation")

    def __init__(self, native: NativeStatement, sql: str, generation: int) -> None:
        self._native = native
        self._sql = sql
        self._generation = generation

    @property
    def native(self) -> NativeStatement:
        return self._native

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def generation(self) -> int:
        return self._generation

    def bind(self, *args: Any, **kwargs: Any) -> None:
        """Bind positional *or* named parameters for the next execution."""
        if args and kwargs:
            raise TypeError("bind() takes positional or named parameters, not both")
        if len(args) == 1 and isinstance(args[0], (list, tuple, dict)):
            params: Params = args[0]
        else:
            params = kwargs if kwargs else list(args)
        self._native.bind(params)

    def bind_many(self, rows: Sequence[Params]) -> None:
        """Turn the next execution into a batch over *rows*."""
        self._native.bind_many(rows)

    def set_autocommit(self, flag: bool) -> None:
        self._native.set_autocommit(flag)

    def __repr__(self) -> str:
        return f"Statement(sql={self._sql!r}, generation={self._generation})"


class ResultSet:
    """Open query cursor produced by executing a :class:`Statement`."""

    __slots__ = ("_native", "_statement", "_generation")

    def __init__(self, native: NativeResultSet, statement: Statement, generation: int) -> None:
        self._native = native
        self._statement = statement
        self._generation = generation

    @property
    def native(self) -> NativeResultSet:
        return self._native

    @property
    def statement(self) -> Statement:
        return self._statement

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def row(self) -> Optional[tuple[Any, ...]]:
        """Row the cursor is positioned on, or ``None`` before/after the data."""
        return self._native.row

    @property
    def columns(self) -> list[str]:
        return self._native.columns

    def __getitem__(self, key: Union[int, str]) -> Any:
        row = self._native.row
        if row is None:
            raise IndexError("result set is not positioned on a row")
        if isinstance(key, str):
            try:
                key = [c.lower() for c in self._native.columns].index(key.lower())
            except ValueError:
                raise KeyError(key) from None
        return row[key]

    def __repr__(self) -> str:
        return f"ResultSet(sql={self._statement.sql!r}, generation={self._generation})"
