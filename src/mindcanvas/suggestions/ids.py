"""Collision-free identifiers for generated nodes and edges."""

from __future__ import annotations

import itertools
import secrets
import time
from collections.abc import Callable, Iterable


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """Produces ``{prefix}-{counter}-{millis}-{random}`` ids.

    Ids are checked against every id the generator has been told about
    (``reserve``) or has issued; a collision gets a ``-N`` suffix.
    """

    def __init__(
        self,
        existing: Iterable[str] = (),
        *,
        clock: Callable[[], int] = _now_ms,
        random_suffix: Callable[[], str] | None = None,
    ) -> None:
        self._taken: set[str] = set(existing)
        self._counter = itertools.count(1)
        self._clock = clock
        self._random = random_suffix or (lambda: secrets.token_hex(3))

    def reserve(self, ids: Iterable[str]) -> None:
        self._taken.update(ids)

    def __contains__(self, candidate: object) -> bool:
        return candidate in self._taken

    def next(self, prefix: str) -> str:
        base = f"{prefix}-{next(self._counter)}-{self._clock()}-{self._random()}"
        candidate = base
        suffix = 1
        while candidate in self._taken:
            candidate = f"{base}-{suffix}"
            suffix += 1
        self._taken.add(candidate)
        return candidate
