"""Value types for board nodes and edges.

Nodes and edges are frozen; every change produces a new instance. History
snapshots therefore share unchanged objects instead of copying them.

The wire format matches what the canvas front end exchanges:

    node: {"id", "type", "position": {"x", "y"}, "data": {"label", "content": {"text", "images"}}}
    edge: {"id", "source", "target", "sourceHandle", "targetHandle", "type", "style"}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

DEFAULT_NODE_TYPE = "text"
DEFAULT_EDGE_TYPE = "default"


class HandleSide(Enum):
    """Side of a node an edge attaches to."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    def __str__(self) -> str:
        return self.value

    @property
    def is_horizontal(self) -> bool:
        return self in (HandleSide.LEFT, HandleSide.RIGHT)

    @classmethod
    def parse(cls, value: Any) -> HandleSide | None:
        """Parse a handle id such as ``"right"`` or ``"right-source"``."""
        if isinstance(value, HandleSide):
            return value
        if not isinstance(value, str) or not value:
            return None
        head = value.split("-", 1)[0].lower()
        try:
            return cls(head)
        except ValueError:
            return None


def _finite(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True, slots=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def safe(cls, x: Any, y: Any) -> Position:
        """Build a position, coercing NaN, infinities and junk to 0."""
        return cls(_finite(x), _finite(y))

    def offset(self, dx: float = 0.0, dy: float = 0.0) -> Position:
        return Position(self.x + dx, self.y + dy)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> Position:
        if not isinstance(data, dict):
            return cls()
        return cls.safe(data.get("x", 0), data.get("y", 0))


@dataclass(frozen=True, slots=True)
class NodeContent:
    """Rich-text body of a node. ``text`` holds HTML markup."""

    text: str = ""
    images: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "images": list(self.images)}

    @classmethod
    def from_dict(cls, data: Any) -> NodeContent:
        if isinstance(data, str):
            return cls(text=data)
        if not isinstance(data, dict):
            return cls()
        images = data.get("images") or ()
        return cls(
            text=str(data.get("text") or ""),
            images=tuple(str(i) for i in images if i),
        )


@dataclass(frozen=True, slots=True)
class Node:
    id: str
    position: Position = field(default_factory=Position)
    label: str = ""
    content: NodeContent = field(default_factory=NodeContent)
    type: str = DEFAULT_NODE_TYPE

    def moved_to(self, position: Position) -> Node:
        return replace(self, position=position)

    def with_content(
        self,
        *,
        label: str | None = None,
        text: str | None = None,
        images: tuple[str, ...] | list[str] | None = None,
    ) -> Node:
        content = self.content
        if text is not None or images is not None:
            content = NodeContent(
                text=self.content.text if text is None else text,
                images=self.content.images if images is None else tuple(images),
            )
        return replace(self, label=self.label if label is None else label, content=content)

    def semantic_key(self) -> tuple[Any, ...]:
        """Fields that matter when comparing document and render state."""
        return (self.id, self.type, self.position, self.label, self.content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": {"label": self.label, "content": self.content.to_dict()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        """Build a node from its wire form.

        Raises:
            KeyError: If ``id`` is missing.
        """
        payload = data.get("data") or {}
        label = payload.get("label", data.get("label", ""))
        return cls(
            id=str(data["id"]),
            position=Position.from_dict(data.get("position")),
            label="" if label is None else str(label),
            content=NodeContent.from_dict(payload.get("content", data.get("content"))),
            type=str(data.get("type") or DEFAULT_NODE_TYPE),
        )


@dataclass(frozen=True, slots=True)
class Edge:
    id: str
    source: str
    target: str
    source_handle: HandleSide | None = None
    target_handle: HandleSide | None = None
    type: str = DEFAULT_EDGE_TYPE
    style: dict[str, Any] = field(default_factory=dict, hash=False)

    def semantic_key(self) -> tuple[Any, ...]:
        return (self.id, self.source, self.target, self.source_handle, self.target_handle, self.type)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
        }
        if self.source_handle is not None:
            data["sourceHandle"] = self.source_handle.value
        if self.target_handle is not None:
            data["targetHandle"] = self.target_handle.value
        if self.style:
            data["style"] = dict(self.style)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        style = data.get("style")
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            target=str(data["target"]),
            source_handle=HandleSide.parse(data.get("sourceHandle")),
            target_handle=HandleSide.parse(data.get("targetHandle")),
            type=str(data.get("type") or DEFAULT_EDGE_TYPE),
            style=dict(style) if isinstance(style, dict) else {},
        )
