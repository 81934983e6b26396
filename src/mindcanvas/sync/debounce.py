"""Trailing-edge debouncing driven by an injectable clock."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class Debouncer:
    """Coalesce bursts of ``schedule()`` calls into one ``callback()``.

    The callback fires once ``delay_ms`` has passed since the last
    ``schedule()``. It fires from ``tick()`` (when the caller drives time
    itself) or from an asyncio timer when ``schedule()`` is called inside a
    running event loop. ``flush()`` fires a pending call immediately.
    """

    def __init__(self, delay_ms: float, callback: Callable[[], None], *, clock: Clock = monotonic_ms) -> None:
        self._delay_ms = delay_ms
        self._callback = callback
        self._clock = clock
        self._due: float | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._due is not None

    @property
    def due_at(self) -> float | None:
        return self._due

    def schedule(self) -> None:
        self._due = self._clock() + self._delay_ms
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.call_later(self._delay_ms / 1000.0, self._on_timer)

    def tick(self, now: float | None = None) -> bool:
        """Fire the callback if it is due. Returns True if it fired."""
        if self._due is None:
            return False
        if (self._clock() if now is None else now) < self._due:
            return False
        self._fire()
        return True

    def flush(self) -> bool:
        if self._due is None:
            return False
        self._fire()
        return True

    def cancel(self) -> None:
        self._due = None
        self._cancel_timer()

    def _on_timer(self) -> None:
        self._timer = None
        if self._due is not None:
            self._fire()

    def _fire(self) -> None:
        self._due = None
        self._cancel_timer()
        self._callback()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
