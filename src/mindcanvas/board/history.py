"""Whole-document snapshot undo/redo.

Snapshots hold tuples of frozen nodes and edges, so taking one costs a
reference per element and unchanged nodes are shared between snapshots.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from mindcanvas.board.models import Edge, Node
from mindcanvas.logging import TRACE, get_logger

log = get_logger("history")


@dataclass(frozen=True, slots=True)
class HistorySnapshot:
    """Immutable {nodes, edges} state at one point in time."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @classmethod
    def capture(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> HistorySnapshot:
        return cls(tuple(nodes), tuple(edges))


class HistoryManager:
    """Past/future stacks of snapshots.

    Callers record the state *before* a mutation. ``undo`` and ``redo`` take
    the current state so it can be moved onto the opposite stack.

    Args:
        max_depth: Oldest entries are dropped beyond this many. None keeps all.
    """

    def __init__(self, *, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be positive")
        self._max_depth = max_depth
        self._past: deque[HistorySnapshot] = deque(maxlen=max_depth)
        self._future: deque[HistorySnapshot] = deque(maxlen=max_depth)

    @property
    def max_depth(self) -> int | None:
        return self._max_depth

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def past_depth(self) -> int:
        return len(self._past)

    @property
    def future_depth(self) -> int:
        return len(self._future)

    def record(self, snapshot: HistorySnapshot) -> None:
        """Push a pre-mutation snapshot and invalidate the redo stack."""
        self._past.append(snapshot)
        self._future.clear()
        log.log(TRACE, "history record: past=%d", len(self._past))

    def undo(self, current: HistorySnapshot) -> HistorySnapshot | None:
        """Return the snapshot to restore, or None when there is nothing to undo."""
        if not self._past:
            return None
        previous = self._past.pop()
        self._future.append(current)
        return previous

    def redo(self, current: HistorySnapshot) -> HistorySnapshot | None:
        if not self._future:
            return None
        following = self._future.pop()
        self._past.append(current)
        return following

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()
