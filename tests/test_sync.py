"""Tests for render/document synchronisation.

Tests coverage for:
- src/mindcanvas/sync/reconcile.py
- src/mindcanvas/sync/coordinator.py
- src/mindcanvas/sync/debounce.py
"""

from __future__ import annotations

import pytest

from mindcanvas.board.models import HandleSide, Position
from mindcanvas.config.schema import SyncConfig
from mindcanvas.sync import (
    ChangeKind,
    Debouncer,
    EdgeChange,
    NodeChange,
    RenderEdge,
    RenderNode,
    SyncCoordinator,
    reconcile,
)
from tests.utils import make_document, make_edge, make_node, tree_document


# =============================================================================
# Helpers
# =============================================================================


def move(node_id: str, x: float, y: float, *, dragging: bool | None = False) -> NodeChange:
    return NodeChange(ChangeKind.POSITION, node_id, position=Position(x, y), dragging=dragging)


@pytest.fixture
def patches():
    return []


@pytest.fixture
def coordinator(clock, patches):
    doc = make_document([make_node("x", 0, 0), make_node("y", 300, 0)], [make_edge("x", "y")])
    return SyncCoordinator(doc, clock=clock, on_render=patches.append)


# =============================================================================
# Debouncer
# =============================================================================


class TestDebouncer:
    def test_fires_once_after_delay(self, clock) -> None:
        calls = []
        debouncer = Debouncer(300, lambda: calls.append(clock()), clock=clock)
        debouncer.schedule()
        clock.advance(200)
        debouncer.schedule()
        clock.advance(200)
        assert not debouncer.tick()
        clock.advance(100)
        assert debouncer.tick()
        assert calls == [1500]
        assert not debouncer.pending

    def test_flush_and_cancel(self, clock) -> None:
        calls = []
        debouncer = Debouncer(300, lambda: calls.append(1), clock=clock)
        assert not debouncer.flush()
        debouncer.schedule()
        debouncer.cancel()
        assert not debouncer.tick(clock() + 1000)
        debouncer.schedule()
        assert debouncer.flush()
        assert calls == [1]


# =============================================================================
# reconcile
# =============================================================================


class TestReconcile:
    def test_idempotent(self) -> None:
        """Applying reconcile's result and reconciling again yields no change."""
        doc = tree_document()
        render = [RenderNode(make_node("a", 1, 1)), RenderNode(make_node("stale"))]
        first = reconcile(doc.nodes, doc.edges, render, [], {}, {})
        assert first.nodes is not None and first.edges is not None
        second = reconcile(doc.nodes, doc.edges, first.nodes, first.edges, {}, {})
        assert second.is_empty

    def test_unchanged_returns_empty_patch(self) -> None:
        doc = tree_document()
        render = [RenderNode(n) for n in doc.nodes]
        edges = [RenderEdge(e) for e in doc.edges]
        assert reconcile(doc.nodes, doc.edges, render, edges, {}, {}).is_empty

    def test_dragging_suppresses(self) -> None:
        doc = tree_document()
        render = [RenderNode(make_node("a", 5, 5), dragging=True)]
        assert reconcile(doc.nodes, doc.edges, render, [], {}, {}).is_empty

    def test_newer_render_position_wins(self) -> None:
        node = make_node("a", 0, 0)
        render = [RenderNode(make_node("a", 50, 50))]
        patch = reconcile([node], [], render, [], {"a": 20.0}, {"a": 10.0})
        assert patch.nodes is None
        assert [c.node_id for c in patch.conflicts] == ["a"]
        assert patch.conflicts[0].render_position == Position(50, 50)

    def test_newer_document_position_wins(self) -> None:
        node = make_node("a", 0, 0)
        render = [RenderNode(make_node("a", 50, 50))]
        patch = reconcile([node], [], render, [], {"a": 10.0}, {"a": 20.0})
        assert patch.nodes[0].node.position == Position(0, 0)
        assert patch.conflicts == ()

    def test_selection_carried_over(self) -> None:
        node = make_node("a", label="new")
        render = [RenderNode(make_node("a", label="old"), selected=True)]
        patch = reconcile([node], [], render, [], {}, {})
        assert patch.nodes[0].selected
        assert patch.nodes[0].node.label == "new"


# =============================================================================
# SyncCoordinator
# =============================================================================


class TestSyncCoordinator:
    def test_initial_render_matches_document(self, coordinator, patches) -> None:
        assert [r.id for r in coordinator.render_nodes] == ["x", "y"]
        assert len(coordinator.render_edges) == 1
        assert len(patches) == 1

    def test_drag_release_commits_immediately(self, coordinator, clock) -> None:
        """A node dragged (0,0)->(50,50) is in the document on release."""
        coordinator.on_nodes_change([move("x", 20, 20, dragging=True)])
        clock.advance(16)
        coordinator.on_nodes_change([move("x", 50, 50, dragging=True)])
        assert coordinator.document.get_node("x").position == Position(0, 0)

        clock.advance(16)
        coordinator.on_nodes_change([move("x", 50, 50, dragging=False)])
        assert coordinator.document.get_node("x").position == Position(50, 50)
        assert coordinator.document.history.past_depth == 1
        assert not coordinator.has_pending_push

    def test_non_drag_edits_are_debounced(self, coordinator, clock) -> None:
        coordinator.on_nodes_change([move("y", 310, 0)])
        assert coordinator.document.get_node("y").position == Position(300, 0)
        assert coordinator.has_pending_push
        clock.advance(299)
        coordinator.tick()
        assert coordinator.document.get_node("y").position == Position(300, 0)
        clock.advance(1)
        coordinator.tick()
        assert coordinator.document.get_node("y").position == Position(310, 0)

    def test_resync_deferred_during_drag_and_cooldown(self, coordinator, clock) -> None:
        doc = coordinator.document
        coordinator.on_nodes_change([move("x", 10, 10, dragging=True)])
        doc.update_node_content("y", label="renamed")
        assert coordinator.resync_pending
        assert coordinator.render_node("y").node.label == "y"

        coordinator.on_nodes_change([move("x", 10, 10, dragging=False)])
        assert coordinator.in_cooldown
        clock.advance(499)
        coordinator.tick()
        assert coordinator.render_node("y").node.label == "y"

        clock.advance(1)
        coordinator.tick()
        assert not coordinator.resync_pending
        assert coordinator.render_node("y").node.label == "renamed"
        assert coordinator.render_node("x").node.position == Position(10, 10)

    def test_document_change_resyncs_render(self, coordinator) -> None:
        coordinator.document.add_node(make_node("z", 5, 5))
        assert coordinator.render_node("z") is not None

    def test_deferred_resync_keeps_newer_document_content(self, coordinator, clock) -> None:
        """Pending render edits do not overwrite content changed in the document."""
        clock.advance(10)
        coordinator.on_nodes_change([move("y", 320, 0)])
        coordinator.document.update_node_content("y", text="<p>fresh</p>")
        clock.advance(300)
        coordinator.tick()
        node = coordinator.document.get_node("y")
        assert node.content.text == "<p>fresh</p>"
        assert node.position == Position(320, 0)

    def test_remove_node_pushes_cascade(self, coordinator, clock) -> None:
        coordinator.on_nodes_change([NodeChange(ChangeKind.REMOVE, "y")])
        assert coordinator.render_edges == ()
        clock.advance(300)
        coordinator.tick()
        assert not coordinator.document.has_node("y")
        assert coordinator.document.edges == ()

    def test_selection_pushed(self, coordinator, clock) -> None:
        coordinator.on_nodes_change([NodeChange(ChangeKind.SELECT, "y", selected=True)])
        coordinator.flush()
        assert coordinator.document.selected_node_ids == ("y",)
        assert not coordinator.document.is_dirty

    def test_on_connect_creates_styled_edge(self, coordinator, clock) -> None:
        coordinator.document.add_node(make_node("z"))
        edge = coordinator.on_connect("x", "z", "right-source", "left")
        assert edge is not None
        assert edge.id == "edge-1000"
        assert edge.source_handle is HandleSide.RIGHT
        assert edge.style == {"strokeWidth": 2}
        coordinator.flush()
        assert coordinator.document.get_edge("edge-1000") == edge

    def test_on_connect_ids_are_unique(self, coordinator) -> None:
        first = coordinator.on_connect("x", "y")
        second = coordinator.on_connect("y", "x")
        assert first.id != second.id

    def test_on_connect_unknown_endpoint(self, coordinator) -> None:
        assert coordinator.on_connect("x", "ghost") is None
        assert not coordinator.has_pending_push

    def test_edge_remove_and_update(self, coordinator, clock) -> None:
        coordinator.document.add_node(make_node("z"))
        updated = coordinator.on_edge_update("e-x-y", "x", "z")
        assert updated.target == "z"
        coordinator.flush()
        assert coordinator.document.get_edge("e-x-y").target == "z"

        coordinator.on_edges_change([EdgeChange(ChangeKind.REMOVE, "e-x-y")])
        coordinator.flush()
        assert coordinator.document.edges == ()

    def test_edge_selection_is_render_only(self, coordinator) -> None:
        coordinator.on_edges_change([EdgeChange(ChangeKind.SELECT, "e-x-y", selected=True)])
        assert coordinator.render_edges[0].selected
        assert not coordinator.has_pending_push

    def test_unknown_node_change_ignored(self, coordinator) -> None:
        coordinator.on_nodes_change([move("ghost", 1, 1)])
        assert not coordinator.has_pending_push

    def test_close_stops_listening(self, coordinator) -> None:
        coordinator.close()
        coordinator.document.add_node(make_node("z"))
        assert coordinator.render_node("z") is None


class TestPendingRenderEdits:
    """Unpushed render edits survive unrelated document changes."""

    def test_connected_edge_survives(self, coordinator) -> None:
        coordinator.document.add_node(make_node("z"))
        edge = coordinator.on_connect("x", "z")
        coordinator.document.update_node_content("y", label="renamed")

        assert edge.id in [r.id for r in coordinator.render_edges]
        assert coordinator.render_node("y").node.label == "renamed"
        coordinator.flush()
        assert coordinator.document.get_edge(edge.id) == edge

    def test_removed_node_stays_removed(self, coordinator) -> None:
        coordinator.document.add_node(make_node("z"))
        coordinator.on_nodes_change([NodeChange(ChangeKind.REMOVE, "x")])
        coordinator.document.update_node_content("z", label="renamed")

        assert [r.id for r in coordinator.render_nodes] == ["y", "z"]
        assert coordinator.render_edges == ()
        coordinator.flush()
        assert [n.id for n in coordinator.document.nodes] == ["y", "z"]
        assert coordinator.document.edges == ()

    def test_removed_and_updated_edges_stay(self, coordinator) -> None:
        doc = coordinator.document
        doc.add_node(make_node("z"))
        doc.update_edges([*doc.edges, make_edge("y", "z")])
        coordinator.on_edge_update("e-x-y", "x", "z")
        coordinator.on_edges_change([EdgeChange(ChangeKind.REMOVE, "e-y-z")])
        doc.update_node_content("y", label="renamed")

        assert [(r.id, r.edge.target) for r in coordinator.render_edges] == [("e-x-y", "z")]
        coordinator.flush()
        assert [(e.id, e.target) for e in doc.edges] == [("e-x-y", "z")]

    def test_document_removal_drops_pending_edge(self, coordinator) -> None:
        coordinator.document.add_node(make_node("z"))
        coordinator.on_connect("x", "z")
        coordinator.document.remove_node("z")

        assert [r.id for r in coordinator.render_edges] == ["e-x-y"]
        coordinator.flush()
        assert [e.id for e in coordinator.document.edges] == ["e-x-y"]
