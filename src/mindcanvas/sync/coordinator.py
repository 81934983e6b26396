"""Keeps the render surface and the document from fighting.

The render surface changes immediately under the user's hand. Changes flow
to the document on these terms:

- a drag is committed the moment it ends, bypassing the debounce
- every other edit is coalesced and pushed after ``debounce_ms``
- document changes are reconciled back onto the render surface, except
  while a drag is active or during the ``cooldown_ms`` after one ends;
  those resyncs are deferred to the next ``tick()``

Only the deltas made on the render surface are pushed, so a deferred
resync never lets stale render data overwrite newer document content.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from mindcanvas.board.document import DocumentChange, GraphDocument
from mindcanvas.board.models import Edge, HandleSide, Node, Position
from mindcanvas.config.schema import SyncConfig
from mindcanvas.logging import TRACE, get_logger
from mindcanvas.sync.debounce import Clock, Debouncer, monotonic_ms
from mindcanvas.sync.reconcile import (
    RenderEdge,
    RenderNode,
    RenderPatch,
    reconcile,
    with_position,
)

log = get_logger("sync")

CONNECT_STYLE = {"strokeWidth": 2}


class ChangeKind(Enum):
    POSITION = "position"
    SELECT = "select"
    REMOVE = "remove"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class NodeChange:
    """A change reported by the render surface for one node."""

    kind: ChangeKind
    node_id: str
    position: Position | None = None
    dragging: bool | None = None
    selected: bool | None = None


@dataclass(frozen=True, slots=True)
class EdgeChange:
    kind: ChangeKind  # SELECT or REMOVE
    edge_id: str
    selected: bool | None = None


RenderListener = Callable[[RenderPatch], None]


class SyncCoordinator:
    """Mediates between a render surface and a GraphDocument.

    Args:
        document: The authoritative document.
        config: Debounce and cooldown timing.
        clock: Milliseconds source; tests inject a fake.
        on_render: Called with every patch applied to the render surface.
    """

    def __init__(
        self,
        document: GraphDocument,
        *,
        config: SyncConfig | None = None,
        clock: Clock = monotonic_ms,
        on_render: RenderListener | None = None,
    ) -> None:
        self.document = document
        self.config = config or SyncConfig()
        self._clock = clock
        self._on_render = on_render

        self._render_nodes: dict[str, RenderNode] = {}
        self._render_edges: dict[str, RenderEdge] = {}
        self._render_stamps: dict[str, float] = {}
        self._doc_stamps: dict[str, float] = {}
        self._doc_positions: dict[str, Position] = {}

        self._cooldown_until: float | None = None
        self._resync_pending = False

        self._moved: set[str] = set()
        self._removed_nodes: set[str] = set()
        self._added_edges: dict[str, Edge] = {}
        self._updated_edges: dict[str, Edge] = {}
        self._removed_edges: set[str] = set()
        self._selection_changed = False
        self._debouncer = Debouncer(self.config.debounce_ms, self._push, clock=clock)

        self._track_document_positions()
        self._unsubscribe = document.on_change(self._on_document_change)
        self.resync()

    # -- state ---------------------------------------------------------------

    @property
    def render_nodes(self) -> tuple[RenderNode, ...]:
        return tuple(self._render_nodes.values())

    @property
    def render_edges(self) -> tuple[RenderEdge, ...]:
        return tuple(self._render_edges.values())

    def render_node(self, node_id: str) -> RenderNode | None:
        return self._render_nodes.get(node_id)

    @property
    def is_dragging(self) -> bool:
        return any(r.dragging for r in self._render_nodes.values())

    @property
    def in_cooldown(self) -> bool:
        return self._cooldown_until is not None and self._clock() < self._cooldown_until

    @property
    def has_pending_push(self) -> bool:
        return self._debouncer.pending

    @property
    def resync_pending(self) -> bool:
        return self._resync_pending

    def close(self) -> None:
        self._debouncer.cancel()
        self._unsubscribe()

    # -- document -> render --------------------------------------------------

    def _track_document_positions(self) -> None:
        now = self._clock()
        current = {n.id: n.position for n in self.document.nodes}
        for node_id, position in current.items():
            if self._doc_positions.get(node_id) != position:
                self._doc_stamps[node_id] = now
        for node_id in set(self._doc_positions) - set(current):
            self._doc_stamps.pop(node_id, None)
        self._doc_positions = current

    def _on_document_change(self, change: DocumentChange) -> None:
        self._track_document_positions()
        self.request_resync()

    def request_resync(self) -> None:
        """Resync now, or defer it while dragging or cooling down."""
        if self.is_dragging or self.in_cooldown:
            log.log(TRACE, "resync deferred (dragging=%s)", self.is_dragging)
            self._resync_pending = True
            return
        self.resync()

    def _pending_view(self) -> tuple[list[Node], list[Edge]]:
        """The document as it will look once pending render edits are pushed."""
        nodes = [n for n in self.document.nodes if n.id not in self._removed_nodes]
        node_ids = {n.id for n in nodes}
        edges = [
            self._updated_edges.get(e.id, e)
            for e in self.document.edges
            if e.id not in self._removed_edges and e.id not in self._added_edges
        ]
        edges.extend(self._added_edges.values())
        edges = [e for e in edges if e.source in node_ids and e.target in node_ids]
        return nodes, edges

    def resync(self) -> RenderPatch:
        """Reconcile immediately and apply the resulting patch.

        Render edits still waiting for the debounced push are laid over the
        document first, so they survive unrelated document changes.
        """
        doc_nodes, doc_edges = self._pending_view()
        patch = reconcile(
            doc_nodes,
            doc_edges,
            self.render_nodes,
            self.render_edges,
            self._render_stamps,
            self._doc_stamps,
        )
        if not self.is_dragging:
            self._resync_pending = False
        if patch.is_empty:
            return patch
        if patch.nodes is not None:
            self._render_nodes = {r.id: r for r in patch.nodes}
            for node_id in set(self._render_stamps) - set(self._render_nodes):
                del self._render_stamps[node_id]
        if patch.edges is not None:
            self._render_edges = {r.id: r for r in patch.edges}
        log.debug(
            "Render patched: nodes=%s edges=%s conflicts=%d",
            "-" if patch.nodes is None else len(patch.nodes),
            "-" if patch.edges is None else len(patch.edges),
            len(patch.conflicts),
        )
        if self._on_render is not None:
            self._on_render(patch)
        return patch

    def tick(self, now: float | None = None) -> None:
        """Advance timers: fire due pushes and run deferred resyncs."""
        now = self._clock() if now is None else now
        self._debouncer.tick(now)
        if self._cooldown_until is not None and now >= self._cooldown_until:
            self._cooldown_until = None
        if self._resync_pending and not self.is_dragging and self._cooldown_until is None:
            self.resync()

    def flush(self) -> None:
        """Push pending render edits to the document right away."""
        self._debouncer.flush()

    # -- render -> document --------------------------------------------------

    def on_nodes_change(self, changes: Iterable[NodeChange]) -> None:
        now = self._clock()
        drag_ended: list[str] = []
        schedule = False

        for change in changes:
            current = self._render_nodes.get(change.node_id)
            if current is None:
                log.debug("Ignoring %s change for unknown node %s", change.kind, change.node_id)
                continue

            if change.kind is ChangeKind.POSITION:
                was_dragging = current.dragging
                position = change.position or current.node.position
                moved = position != current.node.position
                updated = with_position(current, position, dragging=change.dragging)
                self._render_nodes[change.node_id] = updated
                if moved:
                    self._render_stamps[change.node_id] = now
                if was_dragging and not updated.dragging:
                    drag_ended.append(change.node_id)
                elif moved and not updated.dragging:
                    self._moved.add(change.node_id)
                    schedule = True

            elif change.kind is ChangeKind.SELECT:
                selected = bool(change.selected)
                self._render_nodes[change.node_id] = replace(current, selected=selected)
                self._selection_changed = True
                schedule = True

            elif change.kind is ChangeKind.REMOVE:
                del self._render_nodes[change.node_id]
                self._render_stamps.pop(change.node_id, None)
                for edge_id in [k for k, r in self._render_edges.items() if r.edge.touches(change.node_id)]:
                    del self._render_edges[edge_id]
                self._moved.discard(change.node_id)
                self._removed_nodes.add(change.node_id)
                schedule = True

        if drag_ended:
            self._commit_drag(drag_ended, now)
        if schedule:
            self._debouncer.schedule()

    def _commit_drag(self, node_ids: list[str], now: float) -> None:
        # Earlier edits must land before the drag result
        self._debouncer.flush()
        positions = {
            node_id: self._render_nodes[node_id].node.position
            for node_id in node_ids
            if node_id in self._render_nodes and self.document.has_node(node_id)
        }
        self._cooldown_until = now + self.config.cooldown_ms
        if positions:
            log.debug("Drag ended for %s, committing", ", ".join(positions))
            self.document.update_node_positions(positions)

    def on_edges_change(self, changes: Iterable[EdgeChange]) -> None:
        schedule = False
        for change in changes:
            current = self._render_edges.get(change.edge_id)
            if current is None:
                continue
            if change.kind is ChangeKind.REMOVE:
                del self._render_edges[change.edge_id]
                if self._added_edges.pop(change.edge_id, None) is None:
                    self._removed_edges.add(change.edge_id)
                self._updated_edges.pop(change.edge_id, None)
                schedule = True
            elif change.kind is ChangeKind.SELECT:
                # Edge selection is render-only
                self._render_edges[change.edge_id] = replace(current, selected=bool(change.selected))
        if schedule:
            self._debouncer.schedule()

    def _new_edge_id(self) -> str:
        base = f"edge-{int(self._clock())}"
        candidate, n = base, 1
        while candidate in self._render_edges or self.document.get_edge(candidate) is not None:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def on_connect(
        self,
        source: str,
        target: str,
        source_handle: HandleSide | str | None = None,
        target_handle: HandleSide | str | None = None,
    ) -> Edge | None:
        """Create an edge drawn on the render surface. Returns None for unknown endpoints."""
        if source not in self._render_nodes or target not in self._render_nodes:
            log.debug("Ignoring connection %s -> %s with unknown endpoint", source, target)
            return None
        edge = Edge(
            id=self._new_edge_id(),
            source=source,
            target=target,
            source_handle=HandleSide.parse(source_handle),
            target_handle=HandleSide.parse(target_handle),
            style=dict(CONNECT_STYLE),
        )
        self._render_edges[edge.id] = RenderEdge(edge)
        self._added_edges[edge.id] = edge
        self._debouncer.schedule()
        return edge

    def on_edge_update(
        self,
        edge_id: str,
        source: str,
        target: str,
        source_handle: HandleSide | str | None = None,
        target_handle: HandleSide | str | None = None,
    ) -> Edge | None:
        """Reattach an existing edge to new endpoints."""
        current = self._render_edges.get(edge_id)
        if current is None or source not in self._render_nodes or target not in self._render_nodes:
            return None
        edge = replace(
            current.edge,
            source=source,
            target=target,
            source_handle=HandleSide.parse(source_handle),
            target_handle=HandleSide.parse(target_handle),
        )
        self._render_edges[edge_id] = replace(current, edge=edge)
        if edge_id in self._added_edges:
            self._added_edges[edge_id] = edge
        else:
            self._updated_edges[edge_id] = edge
        self._debouncer.schedule()
        return edge

    def _push(self) -> None:
        doc = self.document
        moved, removed = self._moved, self._removed_nodes
        added, updated, dropped = self._added_edges, self._updated_edges, self._removed_edges
        selection_changed = self._selection_changed
        self._moved, self._removed_nodes = set(), set()
        self._added_edges, self._updated_edges, self._removed_edges = {}, {}, set()
        self._selection_changed = False

        removed = {i for i in removed if doc.has_node(i)}
        moved = {i for i in moved if doc.has_node(i) and i in self._render_nodes}
        if removed or moved:
            nodes = [
                n.moved_to(self._render_nodes[n.id].node.position) if n.id in moved else n
                for n in doc.nodes
                if n.id not in removed
            ]
            doc.update_nodes(nodes)

        if added or updated or dropped:
            edges = [updated.get(e.id, e) for e in doc.edges if e.id not in dropped]
            edges.extend(added.values())
            edges = [e for e in edges if doc.has_node(e.source) and doc.has_node(e.target)]
            doc.update_edges(edges)

        if selection_changed:
            doc.set_selected_nodes(r.id for r in self._render_nodes.values() if r.selected)
