"""Render surface / document synchronisation."""

from mindcanvas.sync.coordinator import ChangeKind, EdgeChange, NodeChange, SyncCoordinator
from mindcanvas.sync.debounce import Debouncer, monotonic_ms
from mindcanvas.sync.reconcile import RenderEdge, RenderNode, RenderPatch, SyncConflict, reconcile

__all__ = [
    "ChangeKind",
    "Debouncer",
    "EdgeChange",
    "NodeChange",
    "RenderEdge",
    "RenderNode",
    "RenderPatch",
    "SyncConflict",
    "SyncCoordinator",
    "monotonic_ms",
    "reconcile",
]
