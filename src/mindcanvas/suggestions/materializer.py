"""Turn a suggestion tree into new nodes and edges around a focal node.

Categories stack vertically, centred on the focal node, to its right;
concepts sit right of their category and sub-branches right of their
concept. Every candidate position goes through the PlacementSolver against
the document and everything placed earlier in the batch, and the whole
batch is committed as one undoable step.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mindcanvas.board.models import Edge, HandleSide, Node, NodeContent, Position
from mindcanvas.config.schema import LayoutConfig, PlacementConfig, SuggestionConfig
from mindcanvas.errors import UnknownNodeError
from mindcanvas.layout.placement import PlacementSolver, Rect
from mindcanvas.layout.sizing import estimate_node_size, wrap_words
from mindcanvas.logging import get_logger
from mindcanvas.suggestions.ids import IdGenerator
from mindcanvas.suggestions.schema import (
    ConceptItem,
    RepairOutcome,
    SuggestionTree,
    repair_suggestions,
)

if TYPE_CHECKING:
    from mindcanvas.board.document import GraphDocument

log = get_logger("suggestions")


@dataclass
class MaterializationResult:
    focal_id: str
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    fallback_ids: list[str] = field(default_factory=list)  # placed by the fallback offset
    outcome: RepairOutcome = RepairOutcome.WELL_FORMED
    issues: list[str] = field(default_factory=list)


def reason_html(reason: str, words_per_line: int = 3) -> str:
    """Escape and wrap a reason into the node's rich-text body."""
    lines = wrap_words(reason, words_per_line).splitlines()
    if not lines:
        return ""
    return "<p>" + "<br>".join(html.escape(line) for line in lines) + "</p>"


class SuggestionMaterializer:
    """Plans and commits suggestion subtrees for one document."""

    def __init__(
        self,
        document: GraphDocument,
        *,
        config: SuggestionConfig | None = None,
        layout_config: LayoutConfig | None = None,
        placement: PlacementSolver | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self.document = document
        self.config = config or SuggestionConfig()
        self.layout_config = layout_config or LayoutConfig()
        self.solver = placement or PlacementSolver(PlacementConfig())
        self._ids = ids

    def category_height(self, items: list[ConceptItem]) -> float:
        cfg = self.config
        nested = sum(item.descendant_count() for item in items)
        return cfg.node_height + len(items) * cfg.node_height + nested * cfg.sub_branch_offset_y + cfg.category_margin

    def plan(self, focal_id: str, tree: SuggestionTree) -> MaterializationResult:
        """Compute the nodes and edges to add without touching the document.

        Raises:
            UnknownNodeError: ``focal_id`` is not on the board.
        """
        focal = self.document.get_node(focal_id)
        if focal is None:
            raise UnknownNodeError(f"Unknown focal node {focal_id!r}", node_id=focal_id)

        ids = self._ids or IdGenerator()
        ids.reserve(n.id for n in self.document.nodes)
        ids.reserve(e.id for e in self.document.edges)

        batch = _Batch(self, ids, focal_id)
        for node in self.document.nodes:
            batch.obstacles.append(Rect.for_node(node, estimate_node_size(node, self.layout_config)))

        cfg = self.config
        sections = [(name, items) for name, items in tree.categories.items() if items]
        total = sum(self.category_height(items) for _, items in sections)
        cursor_y = focal.position.y - total / 2

        for name, items in sections:
            anchor = Position(focal.position.x + cfg.category_offset_x, cursor_y + cfg.node_height)
            category = batch.add(name, "", anchor, parent_id=focal.id)

            concept_y = category.position.y + cfg.node_height
            for item in items:
                anchor = Position(category.position.x + cfg.concept_offset_x, concept_y)
                concept = batch.add(item.title, item.reason, anchor, parent_id=category.id)
                if item.sub_branches:
                    concept_y = batch.add_branches(concept, item.sub_branches) + cfg.node_height
                else:
                    concept_y += cfg.node_height

            cursor_y += self.category_height(items)

        return batch.result

    def materialize(self, focal_id: str, suggestions: Any) -> MaterializationResult:
        """Repair ``suggestions`` if needed, plan, and commit in one history step.

        Raises:
            ValidationError: The payload was rejected or the focal node is unknown.
        """
        if isinstance(suggestions, SuggestionTree):
            # Built trees get the same depth cap and empty check as raw payloads
            suggestions = suggestions.model_dump()
        repaired = repair_suggestions(suggestions, max_depth=self.config.max_depth)
        tree, outcome, issues = repaired.unwrap(), repaired.outcome, repaired.issues

        result = self.plan(focal_id, tree)
        result.outcome = outcome
        result.issues = list(issues)
        if result.nodes:
            self.document.add_subgraph(result.nodes, result.edges)
        log.info(
            "Materialized %d node(s), %d edge(s) from %s (%s)",
            len(result.nodes),
            len(result.edges),
            focal_id,
            outcome,
        )
        if result.fallback_ids:
            log.warning("%d node(s) used the fallback placement", len(result.fallback_ids))
        return result


class _Batch:
    """Accumulates placed nodes; each placement sees all earlier ones."""

    def __init__(self, owner: SuggestionMaterializer, ids: IdGenerator, focal_id: str) -> None:
        self.owner = owner
        self.ids = ids
        self.obstacles: list[Rect] = []
        self.result = MaterializationResult(focal_id)

    def add(self, label: str, reason: str, anchor: Position, *, parent_id: str) -> Node:
        owner = self.owner
        content = NodeContent(text=reason_html(reason, owner.layout_config.words_per_line))
        draft = Node(id=self.ids.next("node"), position=anchor, label=label, content=content)
        size = estimate_node_size(draft, owner.layout_config)
        placement = owner.solver.place(anchor, size, self.obstacles)
        node = draft.moved_to(placement.position)
        if placement.is_fallback:
            self.result.fallback_ids.append(node.id)
        self.obstacles.append(Rect.at(node.position, size))
        self.result.nodes.append(node)
        self.result.edges.append(
            Edge(
                id=self.ids.next("edge"),
                source=parent_id,
                target=node.id,
                source_handle=HandleSide.RIGHT,
                target_handle=HandleSide.LEFT,
            )
        )
        return node

    def add_branches(self, parent: Node, branches: list[ConceptItem]) -> float:
        """Place sub-branches right of ``parent``; returns the y cursor after them."""
        cfg = self.owner.config
        y = parent.position.y
        for branch in branches:
            anchor = Position(parent.position.x + cfg.sub_branch_offset_x, y)
            node = self.add(branch.title, branch.reason, anchor, parent_id=parent.id)
            y += cfg.sub_branch_offset_y
            if branch.sub_branches:
                y = max(y, self.add_branches(node, branch.sub_branches))
        return y
