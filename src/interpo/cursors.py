"""Cursor side table and the co-iteration protocol.

Cursors are kept in a table keyed by array identity rather than stored on the
arrays, so reading an array anywhere else never sees iteration state. A
`CoIteration` loop hands out `IterationPass` objects; each pass reads every
array it touches exactly once and reports exhaustion when any of them runs out.

Typical caller:

    with cursors.co_iterate() as loop:
        for iteration in loop:
            row = [iteration.read(value) for value in arrays]
            emit(row)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from interpo.values import UNDEFINED

log = logging.getLogger(__name__)


@dataclass
class _Cursor:
    # holding the array keeps its id() from being reused while the cursor lives
    array: Sequence[Any]
    index: int


class CursorTable:
    """Per-array iteration positions keyed by array identity."""

    def __init__(self) -> None:
        self._cursors: dict[int, _Cursor] = {}

    def __len__(self) -> int:
        return len(self._cursors)

    def _get(self, array: Sequence[Any]) -> _Cursor | None:
        cursor = self._cursors.get(id(array))
        if cursor is None or cursor.array is not array:
            return None
        return cursor

    def has_cursor(self, array: Sequence[Any]) -> bool:
        return self._get(array) is not None

    def position(self, array: Sequence[Any]) -> int | None:
        """Current index of `array`, or None when it is not being iterated."""
        cursor = self._get(array)
        return cursor.index if cursor is not None else None

    def clear(self, array: Sequence[Any]) -> None:
        if self._get(array) is not None:
            del self._cursors[id(array)]

    def advance_or_init(self, array: Sequence[Any]) -> tuple[Any, bool]:
        """Read the element under the cursor and move the cursor on.

        The first call starts at index 0. When the element read is the last
        one the cursor is removed and `exhausted` is True.

        Returns:
            Tuple of (element, exhausted).
        """
        cursor = self._get(array)
        if cursor is None:
            if not array:
                log.debug("Iteration over empty array, exhausted immediately.")
                return UNDEFINED, True
            log.debug("Iteration initializing to 0.")
            cursor = _Cursor(array=array, index=0)
            self._cursors[id(array)] = cursor

        value = array[cursor.index]
        if cursor.index < len(array) - 1:
            cursor.index += 1
            log.debug(f"Iteration advancing to {cursor.index}.")
            return value, False

        log.debug(f"Iteration exhausted after {len(array)} element(s).")
        del self._cursors[id(array)]
        return value, True

    def co_iterate(self) -> "CoIteration":
        return CoIteration(self)


class IterationPass:
    """One synchronized read across all arrays touched by a template."""

    def __init__(self, cursors: CursorTable, number: int = 0) -> None:
        self.cursors = cursors
        self.number = number
        self.exhausted = False
        self.empty = False
        self._reads: dict[int, tuple[Sequence[Any], Any]] = {}

    @property
    def arrays(self) -> list[Sequence[Any]]:
        return [array for array, _ in self._reads.values()]

    def has_read(self, array: Sequence[Any]) -> bool:
        seen = self._reads.get(id(array))
        return seen is not None and seen[0] is array

    def read(self, array: Sequence[Any]) -> Any:
        """Element of `array` for this pass; the cursor moves once per pass.

        Reading an empty array marks the pass `empty`: it has no element for
        that array, so callers drop the pass instead of emitting it.
        """
        seen = self._reads.get(id(array))
        if seen is not None and seen[0] is array:
            return seen[1]

        value, exhausted = self.cursors.advance_or_init(array)
        self._reads[id(array)] = (array, value)
        if exhausted:
            self.exhausted = True
        if not array:
            self.empty = True
        return value


class CoIteration:
    """Drives passes until one exhausts an array or touches none.

    Cursors still attached to longer arrays are cleared when the loop ends.
    """

    def __init__(self, cursors: CursorTable) -> None:
        self.cursors = cursors
        self.passes = 0
        self._participants: dict[int, Sequence[Any]] = {}
        self._current: IterationPass | None = None

    def __enter__(self) -> "CoIteration":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[IterationPass]:
        while True:
            iteration = IterationPass(self.cursors, number=self.passes)
            self._current = iteration
            yield iteration
            self.passes += 1
            self._collect(iteration)
            if iteration.exhausted or not iteration.arrays:
                log.debug(f"Co-iteration finished after {self.passes} pass(es).")
                return

    def _collect(self, iteration: IterationPass) -> None:
        for array in iteration.arrays:
            self._participants[id(array)] = array

    def close(self) -> None:
        if self._current is not None:
            self._collect(self._current)
            self._current = None
        for array in self._participants.values():
            self.cursors.clear(array)
        self._participants.clear()
