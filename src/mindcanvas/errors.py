"""Exceptions raised by board operations.

Every mutating operation validates first and raises before touching the
document, so catching one of these never leaves a half-applied change.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class BoardError(Exception):
    """Base class for mindcanvas errors."""


@dataclass
class ValidationError(BoardError):
    """Input rejected at a boundary (suggestion payload, import file, mutation).

    Carries the individual problems found so callers can report all of them.
    """

    message: str
    issues: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.issues:
            return self.message
        return f"{self.message}: {'; '.join(self.issues)}"


@dataclass
class DanglingEdgeError(ValidationError):
    """An edge references a node id that is not in the document."""

    edge_ids: list[str] = field(default_factory=list)


@dataclass
class UnknownNodeError(ValidationError):
    """An operation targeted a node id that does not exist."""

    node_id: str = ""


@dataclass
class PersistenceFailure(BoardError):
    """Reading or writing a board to the cache or the remote store failed."""

    board_id: str
    operation: str  # "fetch", "save", "cache-read", "cache-write"
    reason: str = ""

    def __str__(self) -> str:
        detail = f": {self.reason}" if self.reason else ""
        return f"Board {self.board_id!r} {self.operation} failed{detail}"
