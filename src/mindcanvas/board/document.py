"""Authoritative board state.

GraphDocument owns the nodes, edges and metadata of the one open board.
All changes go through named operations; node and edge mutations record a
pre-mutation snapshot in the HistoryManager so they can be undone.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

from mindcanvas.board.history import HistoryManager, HistorySnapshot
from mindcanvas.board.models import Edge, Node, NodeContent, Position
from mindcanvas.errors import DanglingEdgeError, UnknownNodeError, ValidationError
from mindcanvas.logging import get_logger

log = get_logger("board")

DEFAULT_BOARD_NAME = "New Brainstorm"
SEED_NODE_ID = "1"
SEED_LABEL = "Main Idea"
SEED_TEXT = "Start your brainstorming here"
SEED_POSITION = Position(250, 150)


@dataclass(frozen=True, slots=True)
class DocumentChange:
    """Notification sent to listeners after each mutation."""

    operation: str
    revision: int
    node_ids: tuple[str, ...] = ()


ChangeListener = Callable[[DocumentChange], None]


def seed_node() -> Node:
    return Node(
        id=SEED_NODE_ID,
        position=SEED_POSITION,
        label=SEED_LABEL,
        content=NodeContent(text=SEED_TEXT),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _index_nodes(nodes: Iterable[Node]) -> dict[str, Node]:
    index: dict[str, Node] = {}
    duplicates: list[str] = []
    for node in nodes:
        if node.id in index:
            duplicates.append(node.id)
        index[node.id] = node
    if duplicates:
        raise ValidationError("Duplicate node ids", [f"node {d!r} appears more than once" for d in duplicates])
    return index


def _index_edges(edges: Iterable[Edge], node_ids: Mapping[str, Node] | set[str]) -> dict[str, Edge]:
    index: dict[str, Edge] = {}
    duplicates: list[str] = []
    dangling: list[Edge] = []
    for edge in edges:
        if edge.id in index:
            duplicates.append(edge.id)
        if edge.source not in node_ids or edge.target not in node_ids:
            dangling.append(edge)
        index[edge.id] = edge
    if dangling:
        raise DanglingEdgeError(
            "Edges reference missing nodes",
            [f"edge {e.id!r} ({e.source} -> {e.target})" for e in dangling],
            edge_ids=[e.id for e in dangling],
        )
    if duplicates:
        raise ValidationError("Duplicate edge ids", [f"edge {d!r} appears more than once" for d in duplicates])
    return index


class GraphDocument:
    """The persisted node/edge/metadata state of one board.

    Invariants held after every operation:
    - node ids are unique
    - every edge's source and target name an existing node
    - ``is_dirty`` is set by every mutation and cleared only by
      ``set_board`` and ``mark_saved``

    Selection is tracked here too but is neither recorded in history nor
    counted as a modification.
    """

    def __init__(
        self,
        board_id: str,
        *,
        name: str = DEFAULT_BOARD_NAME,
        nodes: Iterable[Node] = (),
        edges: Iterable[Edge] = (),
        history: HistoryManager | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self.board_id = board_id
        self.board_name = name
        self._nodes = _index_nodes(nodes)
        self._edges = _index_edges(edges, self._nodes)
        self.history = history or HistoryManager()
        self.is_dirty = False
        self.last_saved_at: datetime | None = None
        self.selected_node_ids: tuple[str, ...] = ()
        self.revision = 0
        self._listeners: list[ChangeListener] = []

    @classmethod
    def default(cls, board_id: str, **kwargs) -> GraphDocument:
        """A fresh board holding only the seed node."""
        return cls(board_id, name=DEFAULT_BOARD_NAME, nodes=[seed_node()], **kwargs)

    # -- read access ---------------------------------------------------------

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._edges.values())

    @property
    def selected_node_id(self) -> str | None:
        return self.selected_node_ids[0] if self.selected_node_ids else None

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(f"Unknown node {node_id!r}", node_id=node_id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def children(self, node_id: str) -> list[Node]:
        """Targets of edges leaving ``node_id``, in edge order."""
        return [self._nodes[e.target] for e in self._edges.values() if e.source == node_id]

    def parents(self, node_id: str) -> list[Node]:
        return [self._nodes[e.source] for e in self._edges.values() if e.target == node_id]

    def roots(self) -> list[Node]:
        """Nodes with no incoming edge, in document order."""
        targets = {e.target for e in self._edges.values()}
        return [n for n in self._nodes.values() if n.id not in targets]

    def snapshot(self) -> HistorySnapshot:
        return HistorySnapshot.capture(self._nodes.values(), self._edges.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # -- listeners -----------------------------------------------------------

    def on_change(self, callback: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(callback)

        def unregister() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unregister

    def _emit(self, operation: str, node_ids: Iterable[str] = ()) -> None:
        self.revision += 1
        change = DocumentChange(operation, self.revision, tuple(node_ids))
        log.debug("%s (rev %d) on board %s", operation, self.revision, self.board_id)
        for listener in list(self._listeners):
            listener(change)

    def _commit(
        self,
        operation: str,
        nodes: dict[str, Node],
        edges: dict[str, Edge],
        *,
        record: bool = True,
        node_ids: Iterable[str] = (),
    ) -> None:
        if record:
            self.history.record(self.snapshot())
        self._nodes = nodes
        self._edges = edges
        self.is_dirty = True
        self._emit(operation, node_ids)

    # -- whole-board operations ----------------------------------------------

    def set_board(
        self,
        board_id: str,
        name: str,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
    ) -> None:
        """Replace the whole board, as on load. Clears history and the dirty flag."""
        new_nodes = _index_nodes(nodes)
        new_edges = _index_edges(edges, new_nodes)
        self.board_id = board_id
        self.board_name = name
        self._nodes = new_nodes
        self._edges = new_edges
        self.history.clear()
        self.selected_node_ids = ()
        self.is_dirty = False
        self.last_saved_at = self._clock()
        self._emit("set_board")

    def clear_board(self) -> None:
        """Remove every node and edge (undoable)."""
        self.selected_node_ids = ()
        self._commit("clear_board", {}, {})

    def update_board_name(self, name: str) -> None:
        """Rename the board. Not recorded in history."""
        self.board_name = name
        self.is_dirty = True
        self._emit("update_board_name")

    def mark_saved(self, at: datetime | None = None) -> None:
        self.is_dirty = False
        self.last_saved_at = at or self._clock()

    # -- node operations -----------------------------------------------------

    def update_nodes(self, nodes: Iterable[Node], *, record_history: bool = True) -> None:
        """Replace the node set.

        Nodes absent from ``nodes`` are removed together with their edges.
        Non-finite coordinates are coerced to 0. Pass ``record_history=False``
        for intermediate states that must not become undo steps.
        """
        new_nodes = _index_nodes(n.moved_to(Position.safe(n.position.x, n.position.y)) for n in nodes)
        new_edges = {k: e for k, e in self._edges.items() if e.source in new_nodes and e.target in new_nodes}
        dropped = set(self._nodes) - set(new_nodes)
        if dropped:
            log.debug("update_nodes drops %d node(s) and %d edge(s)", len(dropped), len(self._edges) - len(new_edges))
        self.selected_node_ids = tuple(i for i in self.selected_node_ids if i in new_nodes)
        self._commit("update_nodes", new_nodes, new_edges, record=record_history, node_ids=new_nodes)

    def update_node_positions(
        self,
        positions: Mapping[str, Position],
        *,
        record_history: bool = True,
    ) -> None:
        """Move existing nodes. Raises UnknownNodeError for ids not on the board."""
        missing = [i for i in positions if i not in self._nodes]
        if missing:
            raise UnknownNodeError(
                "Cannot move unknown nodes", [f"node {m!r}" for m in missing], node_id=missing[0]
            )
        new_nodes = dict(self._nodes)
        for node_id, pos in positions.items():
            new_nodes[node_id] = new_nodes[node_id].moved_to(Position.safe(pos.x, pos.y))
        self._commit("update_node_positions", new_nodes, dict(self._edges), record=record_history, node_ids=positions)

    def add_node(self, node: Node) -> None:
        """Add a node, replacing any node with the same id, and select it."""
        new_nodes = {k: n for k, n in self._nodes.items() if k != node.id}
        new_nodes[node.id] = node.moved_to(Position.safe(node.position.x, node.position.y))
        self.selected_node_ids = (node.id,)
        self._commit("add_node", new_nodes, dict(self._edges), node_ids=(node.id,))

    def add_subgraph(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Add new nodes and edges as a single undoable step.

        Raises:
            ValidationError: If a node or edge id is already taken.
            DanglingEdgeError: If an edge endpoint is neither existing nor new.
        """
        added_nodes = _index_nodes(nodes)
        taken = [i for i in added_nodes if i in self._nodes]
        if taken:
            raise ValidationError("Node ids already in use", [f"node {t!r}" for t in taken])
        new_nodes = {**self._nodes, **added_nodes}
        added_edges = _index_edges(edges, new_nodes)
        taken = [i for i in added_edges if i in self._edges]
        if taken:
            raise ValidationError("Edge ids already in use", [f"edge {t!r}" for t in taken])
        self._commit(
            "add_subgraph",
            new_nodes,
            {**self._edges, **added_edges},
            node_ids=added_nodes,
        )

    def update_node_content(
        self,
        node_id: str,
        *,
        label: str | None = None,
        text: str | None = None,
        images: list[str] | tuple[str, ...] | None = None,
    ) -> Node:
        node = self.require_node(node_id).with_content(label=label, text=text, images=images)
        new_nodes = dict(self._nodes)
        new_nodes[node_id] = node
        self._commit("update_node_content", new_nodes, dict(self._edges), node_ids=(node_id,))
        return node

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge touching it."""
        self.require_node(node_id)
        new_nodes = {k: n for k, n in self._nodes.items() if k != node_id}
        new_edges = {k: e for k, e in self._edges.items() if not e.touches(node_id)}
        self.selected_node_ids = tuple(i for i in self.selected_node_ids if i != node_id)
        self._commit("remove_node", new_nodes, new_edges, node_ids=(node_id,))

    # -- edge operations -----------------------------------------------------

    def update_edges(self, edges: Iterable[Edge], *, record_history: bool = True) -> None:
        """Replace the edge set. Edges with missing endpoints are rejected."""
        new_edges = _index_edges(edges, self._nodes)
        self._commit("update_edges", dict(self._nodes), new_edges, record=record_history)

    # -- selection -----------------------------------------------------------

    def set_selected_node(self, node_id: str | None) -> None:
        self.selected_node_ids = (node_id,) if node_id is not None and node_id in self._nodes else ()

    def set_selected_nodes(self, node_ids: Iterable[str]) -> None:
        self.selected_node_ids = tuple(i for i in dict.fromkeys(node_ids) if i in self._nodes)

    # -- history -------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False when there is none."""
        snapshot = self.history.undo(self.snapshot())
        if snapshot is None:
            return False
        self._restore(snapshot, "undo")
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo(self.snapshot())
        if snapshot is None:
            return False
        self._restore(snapshot, "redo")
        return True

    def _restore(self, snapshot: HistorySnapshot, operation: str) -> None:
        self._nodes = {n.id: n for n in snapshot.nodes}
        self._edges = {e.id: e for e in snapshot.edges}
        self.selected_node_ids = tuple(i for i in self.selected_node_ids if i in self._nodes)
        self.is_dirty = True
        self._emit(operation)
