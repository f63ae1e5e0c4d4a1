"""Live statement / result‑set bookkeeping for one session.

The registry is scoped to a *connection generation*.  ``invalidate()`` clears
both membership sets and advances the generation, so any handle created under
an older generation is rejected even if it were somehow re‑added.

Not thread‑safe on its own: the owning session holds its lock around every
call.
"""

from __future__ import annotations

import logging
from typing import Union

from ensuredb.core.handles import ResultSet, Statement

logger = logging.getLogger("ensuredb.core.registry")

Handle = Union[Statement, ResultSet]


class ResourceRegistry:
    """Membership sets for statements and result sets of the live connection."""

    def __init__(self) -> None:
        self._generation = 0
        self._statements: set[Statement] = set()
        self._result_sets: set[ResultSet] = set()

    # -- properties --------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._statements) + len(self._result_sets)

    # -- public ------------------------------------------------------------

    def register(self, handle: Handle) -> None:
        if handle.generation != self._generation:
            raise ValueError(
                f"cannot register {handle!r}: live generation is {self._generation}"
            )
        self._set_for(handle).add(handle)

    def unregister(self, handle: Handle) -> None:
        """Forget *handle*; unknown handles are ignored."""
        self._set_for(handle).discard(handle)
        if isinstance(handle, Statement):
            for result_set in [r for r in self._result_sets if r.statement is handle]:
                self._result_sets.discard(result_set)

    def contains(self, handle: Handle) -> bool:
        return handle in self._set_for(handle) and handle.generation == self._generation

    def invalidate(self) -> int:
        """Drop every handle and start a new generation.  Returns the new generation."""
        dropped = len(self)
        self._statements.clear()
        self._result_sets.clear()
        self._generation += 1
        logger.debug(
            "Registry invalidated (generation=%d, dropped=%d handle(s))",
            self._generation,
            dropped,
        )
        return self._generation

    # -- private -----------------------------------------------------------

    def _set_for(self, handle: Handle) -> set:
        if isinstance(handle, Statement):
            return self._statements
        if isinstance(handle, ResultSet):
            return self._result_sets
        raise TypeError(f"unsupported handle type: {type(handle).__name__}")
