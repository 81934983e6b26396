"""Collision-free placement of new nodes.

The solver walks a fixed candidate sequence around the desired anchor and
returns the first box that clears every obstacle by the configured margin.
The sequence ends in an unconditional fallback, so a position is always
returned.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from mindcanvas.board.models import Node, Position
from mindcanvas.config.schema import PlacementConfig
from mindcanvas.layout.sizing import Size
from mindcanvas.logging import TRACE, get_logger

log = get_logger("placement")


class PlacementStrategy(Enum):
    ANCHOR = "anchor"
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    GRID = "grid"
    FALLBACK = "fallback"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def at(cls, position: Position, size: Size) -> Rect:
        return cls(position.x, position.y, size.width, size.height)

    @classmethod
    def for_node(cls, node: Node, size: Size) -> Rect:
        return cls.at(node.position, size)

    def inflated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x - dx, self.y - dy, self.width + 2 * dx, self.height + 2 * dy)

    def intersects(self, other: Rect) -> bool:
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )


@dataclass(frozen=True, slots=True)
class Placement:
    position: Position
    strategy: PlacementStrategy

    @property
    def is_fallback(self) -> bool:
        return self.strategy is PlacementStrategy.FALLBACK


class PlacementSolver:
    """Find a nearby non-overlapping position for a box.

    Both boxes are inflated by half the margin on each side before the
    intersection test, so accepted boxes keep at least ``margin_x`` and
    ``margin_y`` of clear space between them.
    """

    def __init__(self, config: PlacementConfig | None = None) -> None:
        self.config = config or PlacementConfig()

    def overlaps(self, a: Rect, b: Rect) -> bool:
        hx, hy = self.config.margin_x / 2, self.config.margin_y / 2
        return a.inflated(hx, hy).intersects(b.inflated(hx, hy))

    def is_free(self, rect: Rect, obstacles: Iterable[Rect]) -> bool:
        return not any(self.overlaps(rect, o) for o in obstacles)

    def _steps(self) -> list[float]:
        cfg = self.config
        count = int(cfg.max_offset // cfg.step) if cfg.step > 0 else 0
        return [cfg.step * i for i in range(1, count + 1)]

    def candidates(self) -> Iterator[tuple[float, float, PlacementStrategy]]:
        """Offsets from the anchor, in search order (fallback excluded)."""
        steps = self._steps()
        yield 0.0, 0.0, PlacementStrategy.ANCHOR
        for d in steps:
            yield 0.0, d, PlacementStrategy.VERTICAL
            yield 0.0, -d, PlacementStrategy.VERTICAL
        for d in steps:
            yield d, 0.0, PlacementStrategy.HORIZONTAL
            yield -d, 0.0, PlacementStrategy.HORIZONTAL
        for dx in steps:
            for dy in steps:
                yield dx, dy, PlacementStrategy.GRID
                yield dx, -dy, PlacementStrategy.GRID
                yield -dx, dy, PlacementStrategy.GRID
                yield -dx, -dy, PlacementStrategy.GRID

    def place(self, anchor: Position, size: Size, obstacles: Iterable[Rect]) -> Placement:
        """Resolve ``anchor`` to a free position. Never mutates ``obstacles``."""
        blocked = list(obstacles)
        for dx, dy, strategy in self.candidates():
            rect = Rect(anchor.x + dx, anchor.y + dy, size.width, size.height)
            if self.is_free(rect, blocked):
                if strategy is not PlacementStrategy.ANCHOR:
                    log.log(TRACE, "placed at offset (%s, %s) via %s", dx, dy, strategy)
                return Placement(Position(rect.x, rect.y), strategy)

        cfg = self.config
        log.debug("No free slot near (%s, %s), using fallback offset", anchor.x, anchor.y)
        return Placement(anchor.offset(cfg.fallback_dx, cfg.fallback_dy), PlacementStrategy.FALLBACK)
