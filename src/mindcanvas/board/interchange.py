"""Board import/export in the JSON interchange format.

    {"id": ..., "name": ..., "nodes": [...], "edges": [...], "timestamp": ...}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from mindcanvas.board.models import Edge, Node
from mindcanvas.errors import DanglingEdgeError, ValidationError

if TYPE_CHECKING:
    from mindcanvas.board.document import GraphDocument


@dataclass
class BoardRecord:
    """A parsed board payload, not yet loaded into a document."""

    id: str | None
    name: str | None
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def export_board(document: GraphDocument, *, timestamp: datetime | None = None) -> dict[str, Any]:
    """Serialize the document to the interchange format."""
    stamp = timestamp or datetime.now(timezone.utc)
    return {
        "id": document.board_id,
        "name": document.board_name,
        "nodes": [n.to_dict() for n in document.nodes],
        "edges": [e.to_dict() for e in document.edges],
        "timestamp": stamp.isoformat(),
    }


def _node_shape_issues(raw: dict[str, Any], where: str) -> list[str]:
    """Type problems in one wire node that ``Node.from_dict`` cannot absorb."""
    issues: list[str] = []
    position = raw.get("position")
    if position is not None and not isinstance(position, dict):
        issues.append(f"{where}: 'position' must be an object")
    data = raw.get("data")
    if data is not None and not isinstance(data, dict):
        issues.append(f"{where}: 'data' must be an object")
        return issues
    content = (data or {}).get("content", raw.get("content"))
    if content is None or isinstance(content, str):
        return issues
    if not isinstance(content, dict):
        issues.append(f"{where}: 'content' must be an object or a string")
    elif content.get("images") is not None and not isinstance(content["images"], list):
        issues.append(f"{where}: 'images' must be a list")
    return issues


def parse_board(payload: Any) -> BoardRecord:
    """Validate an interchange payload.

    Both ``nodes`` and ``edges`` must be present and be lists. Every problem
    found is collected before raising so the caller can show all of them.

    Raises:
        ValidationError: The payload is malformed.
        DanglingEdgeError: An edge names a node missing from the payload.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid board file", ["top level must be an object"])

    issues: list[str] = []
    raw_nodes = payload.get("nodes")
    raw_edges = payload.get("edges")
    if not isinstance(raw_nodes, list):
        issues.append("missing 'nodes' list")
    if not isinstance(raw_edges, list):
        issues.append("missing 'edges' list")
    if issues:
        raise ValidationError("Invalid board file", issues)

    nodes: list[Node] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict) or raw.get("id") in (None, ""):
            issues.append(f"node #{i} has no id")
            continue
        shape_issues = _node_shape_issues(raw, f"node {raw['id']!r}")
        if shape_issues:
            issues.extend(shape_issues)
            continue
        node = Node.from_dict(raw)
        if node.id in seen:
            issues.append(f"node {node.id!r} appears more than once")
            continue
        seen.add(node.id)
        nodes.append(node)

    edges: list[Edge] = []
    dangling: list[str] = []
    for i, raw in enumerate(raw_edges):
        if not isinstance(raw, dict) or any(raw.get(k) in (None, "") for k in ("id", "source", "target")):
            issues.append(f"edge #{i} needs id, source and target")
            continue
        edge = Edge.from_dict(raw)
        if edge.source not in seen or edge.target not in seen:
            dangling.append(edge.id)
            continue
        edges.append(edge)

    if issues:
        raise ValidationError("Invalid board file", issues)
    if dangling:
        raise DanglingEdgeError(
            "Board file has edges to missing nodes",
            [f"edge {d!r}" for d in dangling],
            edge_ids=dangling,
        )

    board_id = payload.get("id")
    name = payload.get("name")
    return BoardRecord(
        id=None if board_id is None else str(board_id),
        name=name if isinstance(name, str) and name else None,
        nodes=nodes,
        edges=edges,
    )
