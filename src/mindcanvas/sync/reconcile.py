"""Pure reconciliation of render state against the document.

``reconcile`` decides what the render surface should show given the
document, the current render state and per-node modification stamps. It
has no side effects; the coordinator decides when to call it and applies
the returned patch.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from mindcanvas.board.models import Edge, Node, Position
from mindcanvas.logging import get_logger

log = get_logger("sync")

_NEVER = float("-inf")


@dataclass(frozen=True, slots=True)
class RenderNode:
    """A node as shown on the render surface, with transient UI flags."""

    node: Node
    dragging: bool = False
    selected: bool = False

    @property
    def id(self) -> str:
        return self.node.id


@dataclass(frozen=True, slots=True)
class RenderEdge:
    edge: Edge
    selected: bool = False

    @property
    def id(self) -> str:
        return self.edge.id


@dataclass(frozen=True, slots=True)
class SyncConflict:
    """A node whose render position was kept over the document's."""

    node_id: str
    document_position: Position
    render_position: Position


@dataclass(frozen=True, slots=True)
class RenderPatch:
    """Replacement render state. ``None`` means that side needs no change."""

    nodes: tuple[RenderNode, ...] | None = None
    edges: tuple[RenderEdge, ...] | None = None
    conflicts: tuple[SyncConflict, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.nodes is None and self.edges is None


EMPTY_PATCH = RenderPatch()


def reconcile(
    doc_nodes: Sequence[Node],
    doc_edges: Sequence[Edge],
    render_nodes: Sequence[RenderNode],
    render_edges: Sequence[RenderEdge],
    render_stamps: Mapping[str, float],
    doc_stamps: Mapping[str, float],
) -> RenderPatch:
    """Compute the patch that brings the render surface in line with the document.

    The document wins, except that each node keeps its render position when
    the render side moved it more recently than the document did. Only
    semantic fields are compared; dragging and selection flags are carried
    over untouched. Nothing is reconciled while any node is being dragged.
    """
    if any(r.dragging for r in render_nodes):
        return EMPTY_PATCH

    rendered = {r.id: r for r in render_nodes}
    merged_nodes: list[RenderNode] = []
    conflicts: list[SyncConflict] = []

    for node in doc_nodes:
        current = rendered.get(node.id)
        if current is None:
            merged_nodes.append(RenderNode(node))
            continue
        position = node.position
        render_pos = current.node.position
        if render_pos != position and render_stamps.get(node.id, _NEVER) > doc_stamps.get(node.id, _NEVER):
            conflicts.append(SyncConflict(node.id, position, render_pos))
            position = render_pos
        merged_nodes.append(RenderNode(node.moved_to(position), selected=current.selected))

    selected_edges = {r.id for r in render_edges if r.selected}
    merged_edges = [RenderEdge(e, selected=e.id in selected_edges) for e in doc_edges]

    nodes_same = [r.node.semantic_key() for r in merged_nodes] == [r.node.semantic_key() for r in render_nodes]
    edges_same = [r.edge.semantic_key() for r in merged_edges] == [r.edge.semantic_key() for r in render_edges]

    for conflict in conflicts:
        log.debug("Keeping newer render position for %s", conflict.node_id)

    return RenderPatch(
        nodes=None if nodes_same else tuple(merged_nodes),
        edges=None if edges_same else tuple(merged_edges),
        conflicts=tuple(conflicts),
    )


def with_position(render_node: RenderNode, position: Position, *, dragging: bool | None = None) -> RenderNode:
    return replace(
        render_node,
        node=render_node.node.moved_to(position),
        dragging=render_node.dragging if dragging is None else dragging,
    )
