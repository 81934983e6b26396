"""Hierarchical (rank) layout of a whole board.

Pipeline:
1. Collapse strongly connected components so cycles cannot break ranking
2. Rank = longest path from a root over the condensed DAG
3. Order each rank with barycenter sweeps, keeping the fewest-crossings order
4. Assign coordinates: ranks along the primary axis, nodes along the other

Only node positions are produced; edges are never touched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import networkx as nx

from mindcanvas.board.models import Edge, Node, Position
from mindcanvas.config.schema import LayoutConfig
from mindcanvas.layout.sizing import Size, estimate_node_size
from mindcanvas.logging import get_logger

if TYPE_CHECKING:
    from mindcanvas.board.document import GraphDocument

log = get_logger("layout")

MAX_SWEEPS = 24


class LayoutDirection(Enum):
    TB = "TB"  # top to bottom
    LR = "LR"  # left to right
    AUTO = "AUTO"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | LayoutDirection) -> LayoutDirection:
        if isinstance(value, LayoutDirection):
            return value
        return cls(value.upper())


@dataclass
class LayoutResult:
    direction: LayoutDirection  # never AUTO
    positions: dict[str, Position] = field(default_factory=dict)
    ranks: list[list[str]] = field(default_factory=list)
    crossings: int = 0


def infer_direction(edges: Iterable[Edge]) -> LayoutDirection:
    """Pick LR when most edge handles sit on left/right sides, else TB."""
    horizontal = vertical = 0
    for edge in edges:
        for handle in (edge.source_handle, edge.target_handle):
            if handle is None:
                continue
            if handle.is_horizontal:
                horizontal += 1
            else:
                vertical += 1
    return LayoutDirection.LR if horizontal > vertical else LayoutDirection.TB


def build_graph(nodes: Sequence[Node], edges: Iterable[Edge]) -> nx.DiGraph:
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(n.id for n in nodes)
    for edge in edges:
        if edge.source != edge.target and edge.source in graph and edge.target in graph:
            graph.add_edge(edge.source, edge.target)
    return graph


def assign_ranks(graph: nx.DiGraph) -> dict[str, int]:
    """Longest-path ranks; members of one cycle share a rank."""
    condensed = nx.condensation(graph)
    mapping: dict[str, int] = condensed.graph["mapping"]
    component_rank: dict[int, int] = {}
    for component in nx.topological_sort(condensed):
        preds = list(condensed.predecessors(component))
        component_rank[component] = max((component_rank[p] + 1 for p in preds), default=0)
    return {node_id: component_rank[mapping[node_id]] for node_id in graph.nodes}


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive ranks."""
    total = 0
    for idx in range(len(ordering) - 1):
        target_pos = {nid: i for i, nid in enumerate(ordering[idx + 1])}
        pairs: list[tuple[int, int]] = []
        for sp, src in enumerate(ordering[idx]):
            for succ in graph.successors(src):
                if succ in target_pos:
                    pairs.append((sp, target_pos[succ]))
        for i in range(len(pairs)):
            for j in range(i + 1, len(pairs)):
                (a0, a1), (b0, b1) = pairs[i], pairs[j]
                if (a0 - b0) * (a1 - b1) < 0:
                    total += 1
    return total


def _barycenter(neighbours: Iterable[str], positions: dict[str, float], fallback: float) -> float:
    found = [positions[n] for n in neighbours if n in positions]
    if not found:
        return fallback
    return sum(found) / len(found)


def order_ranks(graph: nx.DiGraph, ranks: dict[str, int], initial: Sequence[str]) -> tuple[list[list[str]], int]:
    """Barycenter crossing reduction. Initial order within a rank is ``initial`` order."""
    rank_count = max(ranks.values(), default=-1) + 1
    ordering: list[list[str]] = [[] for _ in range(rank_count)]
    for node_id in initial:
        ordering[ranks[node_id]].append(node_id)

    best = [list(layer) for layer in ordering]
    best_crossings = count_crossings(ordering, graph)

    for _ in range(MAX_SWEEPS):
        if best_crossings == 0:
            break
        for idx in range(1, rank_count):
            above = {nid: float(i) for i, nid in enumerate(ordering[idx - 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[idx])}
            ordering[idx].sort(key=lambda n, a=above, c=current: _barycenter(graph.predecessors(n), a, c[n]))
        for idx in range(rank_count - 2, -1, -1):
            below = {nid: float(i) for i, nid in enumerate(ordering[idx + 1])}
            current = {nid: float(i) for i, nid in enumerate(ordering[idx])}
            ordering[idx].sort(key=lambda n, b=below, c=current: _barycenter(graph.successors(n), b, c[n]))

        crossings = count_crossings(ordering, graph)
        if crossings >= best_crossings:
            break
        best = [list(layer) for layer in ordering]
        best_crossings = crossings

    return best, best_crossings


class LayoutEngine:
    """Computes rank layouts with spacing from LayoutConfig."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        direction: LayoutDirection | str = LayoutDirection.AUTO,
    ) -> LayoutResult:
        direction = LayoutDirection.parse(direction)
        if direction is LayoutDirection.AUTO:
            direction = infer_direction(edges)
        if not nodes:
            return LayoutResult(direction)

        graph = build_graph(nodes, edges)
        ranks = assign_ranks(graph)
        ordering, crossings = order_ranks(graph, ranks, [n.id for n in nodes])
        sizes = {n.id: estimate_node_size(n, self.config) for n in nodes}
        positions = self._coordinates(ordering, sizes, direction)

        log.debug(
            "Layout %s: %d nodes in %d ranks, %d crossings",
            direction,
            len(nodes),
            len(ordering),
            crossings,
        )
        return LayoutResult(direction, positions, ordering, crossings)

    def _coordinates(
        self,
        ordering: list[list[str]],
        sizes: dict[str, Size],
        direction: LayoutDirection,
    ) -> dict[str, Position]:
        cfg = self.config
        horizontal = direction is LayoutDirection.LR

        def along(size: Size) -> float:  # extent on the rank axis
            return size.width if horizontal else size.height

        def across(size: Size) -> float:
            return size.height if horizontal else size.width

        extents = [
            sum(across(sizes[n]) for n in layer) + cfg.node_sep * max(len(layer) - 1, 0) for layer in ordering
        ]
        widest = max(extents, default=0.0)

        positions: dict[str, Position] = {}
        rank_offset = cfg.margin
        for layer, extent in zip(ordering, extents):
            thickness = max((along(sizes[n]) for n in layer), default=0.0)
            cursor = cfg.margin + (widest - extent) / 2
            for node_id in layer:
                size = sizes[node_id]
                # Centre each node on its rank line
                primary = rank_offset + (thickness - along(size)) / 2
                if horizontal:
                    positions[node_id] = Position(primary, cursor)
                else:
                    positions[node_id] = Position(cursor, primary)
                cursor += across(size) + cfg.node_sep
            rank_offset += thickness + cfg.rank_sep
        return positions


def apply_layout(
    document: GraphDocument,
    direction: LayoutDirection | str = LayoutDirection.AUTO,
    *,
    engine: LayoutEngine | None = None,
) -> LayoutResult:
    """Lay out the document and commit the positions as one undo step."""
    result = (engine or LayoutEngine()).compute(document.nodes, document.edges, direction)
    if result.positions:
        document.update_node_positions(result.positions)
    return result
