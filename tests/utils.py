"""Shared test builders for mindcanvas tests."""

from __future__ import annotations

from typing import Any

from mindcanvas.board.document import GraphDocument
from mindcanvas.board.models import Edge, HandleSide, Node, NodeContent, Position


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


def make_node(
    node_id: str,
    x: float = 0.0,
    y: float = 0.0,
    label: str | None = None,
    text: str = "",
) -> Node:
    """Create a text node at (x, y); label defaults to the id."""
    return Node(
        id=node_id,
        position=Position(x, y),
        label=node_id if label is None else label,
        content=NodeContent(text=text),
    )


def make_edge(
    source: str,
    target: str,
    edge_id: str | None = None,
    *,
    source_handle: HandleSide | None = None,
    target_handle: HandleSide | None = None,
) -> Edge:
    return Edge(
        id=edge_id or f"e-{source}-{target}",
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=target_handle,
    )


def make_document(
    nodes: list[Node] | None = None,
    edges: list[Edge] | None = None,
    *,
    board_id: str = "board-1",
    name: str = "Test Board",
    **kwargs: Any,
) -> GraphDocument:
    return GraphDocument(board_id, name=name, nodes=nodes or [], edges=edges or [], **kwargs)


def tree_document() -> GraphDocument:
    """A small tree.

    Structure:
        root
        ├── a
        │   ├── a1
        │   └── a2
        └── b
    """
    nodes = [
        make_node("root", 0, 0),
        make_node("a", 300, -100),
        make_node("b", 300, 100),
        make_node("a1", 600, -150),
        make_node("a2", 600, -50),
    ]
    edges = [
        make_edge("root", "a"),
        make_edge("root", "b"),
        make_edge("a", "a1"),
        make_edge("a", "a2"),
    ]
    return make_document(nodes, edges)


def board_payload(**overrides: Any) -> dict[str, Any]:
    """A valid interchange payload with two connected nodes."""
    payload: dict[str, Any] = {
        "id": "board-1",
        "name": "Imported",
        "nodes": [
            {
                "id": "n1",
                "type": "text",
                "position": {"x": 10, "y": 20},
                "data": {"label": "One", "content": {"text": "<p>first</p>", "images": []}},
            },
            {
                "id": "n2",
                "type": "text",
                "position": {"x": 300, "y": 20},
                "data": {"label": "Two", "content": {"text": "", "images": []}},
            },
        ],
        "edges": [
            {"id": "e1", "source": "n1", "target": "n2", "sourceHandle": "right", "targetHandle": "left"},
        ],
        "timestamp": "2024-01-01T00:00:00+00:00",
    }
    payload.update(overrides)
    return payload
