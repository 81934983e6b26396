"""Textual context around a focal node, for the AI collaborator.

Two views are produced:

- an ASCII tree of the whole board starting from its roots, with the focal
  node marked ``(current)``
- a flat, de-duplicated list of every node reachable from the focal node by
  parent, sibling or child relations, focal node first
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mindcanvas.context.text import html_to_text
from mindcanvas.errors import UnknownNodeError
from mindcanvas.logging import get_logger

if TYPE_CHECKING:
    from mindcanvas.board.document import GraphDocument
    from mindcanvas.board.models import Node

log = get_logger("context")

UNNAMED = "Unnamed Node"
CURRENT_MARK = " (current)"

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


def display_label(node: Node) -> str:
    return node.label or UNNAMED


@dataclass(frozen=True, slots=True)
class ContextEntry:
    id: str
    label: str
    content: str  # plain text

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "label": self.label, "content": self.content}


@dataclass
class NodeContext:
    """Serialized context of one focal node."""

    focal_id: str
    focal_label: str
    focal_text: str
    board_title: str
    ascii_tree: str
    nodes: list[ContextEntry] = field(default_factory=list)

    def to_messages(self) -> list[dict[str, Any]]:
        """Render as the ordered user messages sent ahead of a request."""
        messages = [
            {"role": "user", "content": f"Current node: {self.focal_label}\nDetails: {self.focal_text}"},
            {"role": "user", "content": f"Board title: {self.board_title}"},
        ]
        if self.ascii_tree.strip():
            messages.append({"role": "user", "content": f"Node Context Tree:\n{self.ascii_tree}"})
        else:
            messages.append({"role": "user", "content": f"Node Context Tree: {self.focal_label}"})
        if self.nodes:
            details = "\n".join(f"{e.label or 'Unnamed'}: {e.content or 'No content'}" for e in self.nodes)
            messages.append({"role": "user", "content": f"Node Details:\n{details}"})
        return messages

    def to_dict(self) -> dict[str, Any]:
        return {
            "focal_id": self.focal_id,
            "board_title": self.board_title,
            "ascii_tree": self.ascii_tree,
            "nodes": [e.to_dict() for e in self.nodes],
        }


class ContextSerializer:
    """Builds NodeContext objects from a document."""

    def __init__(self, document: GraphDocument) -> None:
        self.document = document

    def serialize(self, focal_id: str) -> NodeContext:
        """Build the context of ``focal_id``.

        Raises:
            UnknownNodeError: The focal node is not on the board.
        """
        focal = self.document.get_node(focal_id)
        if focal is None:
            raise UnknownNodeError(f"Unknown focal node {focal_id!r}", node_id=focal_id)
        tree = self.ascii_tree(focal_id)
        entries = self.reachable(focal_id)
        log.debug("Context for %s: %d tree lines, %d nodes", focal_id, tree.count("\n"), len(entries))
        return NodeContext(
            focal_id=focal_id,
            focal_label=display_label(focal),
            focal_text=html_to_text(focal.content.text),
            board_title=self.document.board_name or "Untitled Board",
            ascii_tree=tree,
            nodes=entries,
        )

    def ascii_tree(self, focal_id: str) -> str:
        doc = self.document
        visited: set[str] = set()
        lines: list[str] = []

        def walk(node_id: str, prefix: str, is_last: bool) -> None:
            if node_id in visited:
                return
            node = doc.get_node(node_id)
            if node is None:
                return
            visited.add(node_id)
            mark = CURRENT_MARK if node_id == focal_id else ""
            lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{display_label(node)}{mark}")
            children = [c.id for c in doc.children(node_id)]
            child_prefix = prefix + (SPACE if is_last else PIPE)
            for i, child_id in enumerate(children):
                walk(child_id, child_prefix, i == len(children) - 1)

        roots = [r.id for r in doc.roots()]
        if roots:
            for i, root_id in enumerate(roots):
                walk(root_id, "", i == len(roots) - 1)
        else:
            walk(focal_id, "", True)

        if not lines:
            focal = doc.get_node(focal_id)
            if focal is not None:
                lines.append(f"{LAST_BRANCH}{display_label(focal)}{CURRENT_MARK}")
        return "".join(f"{line}\n" for line in lines)

    def reachable(self, focal_id: str) -> list[ContextEntry]:
        """Breadth-first over parent, sibling and child relations."""
        doc = self.document
        seen: set[str] = {focal_id}
        order: list[str] = [focal_id]
        queue: deque[str] = deque([focal_id])

        while queue:
            current = queue.popleft()
            parents = doc.parents(current)
            related = [p.id for p in parents]
            for parent in parents:
                related.extend(c.id for c in doc.children(parent.id))
            related.extend(c.id for c in doc.children(current))
            for node_id in related:
                if node_id not in seen:
                    seen.add(node_id)
                    order.append(node_id)
                    queue.append(node_id)

        entries = []
        for node_id in order:
            node = doc.get_node(node_id)
            if node is not None:
                entries.append(ContextEntry(node.id, display_label(node), html_to_text(node.content.text)))
        return entries
