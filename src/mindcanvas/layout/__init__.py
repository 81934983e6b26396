"""Auto-layout and collision-free placement."""

from mindcanvas.layout.engine import LayoutDirection, LayoutEngine, LayoutResult, apply_layout, infer_direction
from mindcanvas.layout.placement import Placement, PlacementSolver, PlacementStrategy, Rect
from mindcanvas.layout.sizing import Size, estimate_node_size, estimate_text_size, wrap_words

__all__ = [
    "LayoutDirection",
    "LayoutEngine",
    "LayoutResult",
    "apply_layout",
    "infer_direction",
    "Placement",
    "PlacementSolver",
    "PlacementStrategy",
    "Rect",
    "Size",
    "estimate_node_size",
    "estimate_text_size",
    "wrap_words",
]
