"""Tests for AI suggestion repair and materialization.

Tests coverage for:
- src/mindcanvas/suggestions/parsing.py
- src/mindcanvas/suggestions/schema.py
- src/mindcanvas/suggestions/ids.py
- src/mindcanvas/suggestions/materializer.py
"""

from __future__ import annotations

import itertools

import pytest

from mindcanvas.board.document import GraphDocument
from mindcanvas.board.models import HandleSide, Position
from mindcanvas.errors import UnknownNodeError, ValidationError
from mindcanvas.layout import PlacementSolver, Rect, estimate_node_size
from mindcanvas.suggestions import (
    ConceptItem,
    IdGenerator,
    RepairOutcome,
    SuggestionMaterializer,
    SuggestionTree,
    extract_json,
    repair_suggestions,
)
from mindcanvas.suggestions.materializer import reason_html
from tests.utils import make_node


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def doc() -> GraphDocument:
    return GraphDocument.default("board-1")


@pytest.fixture
def ids() -> IdGenerator:
    """Deterministic ids: node-1-0-r, edge-2-0-r, ..."""
    return IdGenerator(clock=lambda: 0, random_suffix=lambda: "r")


def nested(depth: int) -> dict:
    item: dict = {"title": f"level {depth}", "reason": "r"}
    for level in range(depth - 1, 0, -1):
        item = {"title": f"level {level}", "reason": "r", "sub_branches": [item]}
    return item


# =============================================================================
# extract_json
# =============================================================================


class TestExtractJson:
    def test_plain_json(self) -> None:
        assert extract_json('{"A": ["x"]}') == {"A": ["x"]}

    def test_code_fence_and_trailing_comma(self) -> None:
        raw = 'Here you go:\n```json\n{"A": [{"title": "x", "reason": "y"},]}\n```'
        assert extract_json(raw) == {"A": [{"title": "x", "reason": "y"}]}

    def test_smart_quotes_and_bom(self) -> None:
        raw = chr(0xFEFF) + "{“A”: [“x”]}"
        assert extract_json(raw) == {"A": ["x"]}

    def test_bare_array(self) -> None:
        assert extract_json('ideas: ["AI", "VR"] done') == ["AI", "VR"]

    def test_category_scrape(self) -> None:
        raw = 'x "Tech": ["AI", "VR"], "Art": ["Paint" oops] y'
        assert extract_json(raw) == {"Tech": ["AI", "VR"], "Art": ["Paint"]}

    def test_nothing_recoverable(self) -> None:
        assert extract_json("no json here") == {"suggestions": []}
        assert extract_json("   ") == {"suggestions": []}

    def test_non_string_rejected(self) -> None:
        with pytest.raises(TypeError):
            extract_json(123)  # type: ignore[arg-type]


# =============================================================================
# repair_suggestions
# =============================================================================


class TestRepairSuggestions:
    def test_well_formed(self) -> None:
        result = repair_suggestions({"Category A": [{"title": "Idea 1", "reason": "r1"}]})
        assert result.outcome is RepairOutcome.WELL_FORMED
        assert result.issues == []
        item = result.tree.categories["Category A"][0]
        assert (item.title, item.reason) == ("Idea 1", "r1")

    def test_missing_fields_repaired(self) -> None:
        result = repair_suggestions({"A": [{"reason": "why"}, {"title": "t"}]})
        assert result.outcome is RepairOutcome.REPAIRED
        first, second = result.tree.categories["A"]
        assert first.title == "Concept 1"
        assert second.reason == "No reason provided"

    def test_item_coercion(self) -> None:
        result = repair_suggestions({"A": ["bare", 42, {"title": 7, "reason": ["x"]}]})
        bare, number, odd = result.tree.categories["A"]
        assert (bare.title, bare.reason) == ("bare", "No reason provided")
        assert (number.title, number.reason) == ("Concept 2", "Invalid data converted to concept")
        assert (odd.title, odd.reason) == ("7", '["x"]')

    def test_legacy_flat_list(self) -> None:
        result = repair_suggestions([{"title": "x", "reason": "y"}])
        assert result.outcome is RepairOutcome.REPAIRED
        assert list(result.tree.categories) == ["suggestions"]

    def test_raw_text_is_extracted(self) -> None:
        result = repair_suggestions('```json\n{"A": [{"title": "x", "reason": "y"}]}\n```')
        assert result.accepted
        assert result.outcome is RepairOutcome.REPAIRED

    def test_json_string_is_well_formed(self) -> None:
        result = repair_suggestions('{"A": [{"title": "x", "reason": "y"}]}')
        assert result.outcome is RepairOutcome.WELL_FORMED

    def test_depth_truncated(self) -> None:
        result = repair_suggestions({"A": [nested(5)]}, max_depth=3)
        assert result.outcome is RepairOutcome.REPAIRED
        assert result.tree.depth() == 3
        assert any("truncated" in issue for issue in result.issues)

    def test_sub_branch_placeholder_title(self) -> None:
        result = repair_suggestions({"A": [{"title": "x", "reason": "y", "sub_branches": [None]}]})
        sub = result.tree.categories["A"][0].sub_branches[0]
        assert sub.title == "Sub-concept 1"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"A": []},
            {"A": 12},
            42,
            "nothing to see",
        ],
    )
    def test_rejected(self, payload) -> None:
        result = repair_suggestions(payload)
        assert result.outcome is RepairOutcome.REJECTED
        assert not result.accepted
        with pytest.raises(ValidationError):
            result.unwrap()

    def test_mapping_category_converted(self) -> None:
        result = repair_suggestions({"A": {"Idea": "because"}})
        item = result.tree.categories["A"][0]
        assert (item.title, item.reason) == ("Idea", "because")


# =============================================================================
# IdGenerator
# =============================================================================


class TestIdGenerator:
    def test_format_and_counter(self, ids) -> None:
        assert ids.next("node") == "node-1-0-r"
        assert ids.next("edge") == "edge-2-0-r"

    def test_collision_suffix(self) -> None:
        gen = IdGenerator(["node-1-5-abc"], clock=lambda: 5, random_suffix=lambda: "abc")
        assert gen.next("node") == "node-1-5-abc-1"
        assert "node-1-5-abc-1" in gen

    def test_default_ids_unique(self) -> None:
        gen = IdGenerator()
        issued = [gen.next("node") for _ in range(100)]
        assert len(set(issued)) == 100


# =============================================================================
# SuggestionMaterializer
# =============================================================================


class TestMaterializer:
    def test_single_concept_creates_two_nodes_and_edges(self, doc, ids) -> None:
        result = SuggestionMaterializer(doc, ids=ids).materialize(
            "1", {"Category A": [{"title": "Idea 1", "reason": "r1"}]}
        )
        assert len(result.nodes) == 2
        assert len(result.edges) == 2
        assert doc.is_dirty
        assert len(doc) == 3

        category, concept = result.nodes
        assert category.label == "Category A"
        assert concept.label == "Idea 1"
        assert concept.content.text == "<p>r1</p>"
        assert category.position == Position(750, 130)
        assert concept.position == Position(1050, 280)

        to_category, to_concept = result.edges
        assert (to_category.source, to_category.target) == ("1", category.id)
        assert (to_concept.source, to_concept.target) == (category.id, concept.id)
        assert to_category.source_handle is HandleSide.RIGHT
        assert to_category.target_handle is HandleSide.LEFT

    def test_single_undo_step(self, doc) -> None:
        SuggestionMaterializer(doc).materialize("1", {"A": ["x", "y"], "B": ["z"]})
        assert doc.history.past_depth == 1
        doc.undo()
        assert [n.id for n in doc.nodes] == ["1"]

    def test_sub_branches_chain_to_parent(self, doc) -> None:
        payload = {"A": [{"title": "x", "reason": "r", "sub_branches": [{"title": "s1"}, {"title": "s2"}]}]}
        result = SuggestionMaterializer(doc).materialize("1", payload)
        assert result.outcome is RepairOutcome.REPAIRED
        by_label = {n.label: n for n in result.nodes}
        parents = {e.target: e.source for e in result.edges}
        assert parents[by_label["s1"].id] == by_label["x"].id
        assert parents[by_label["s2"].id] == by_label["x"].id
        assert by_label["s1"].position.x > by_label["x"].position.x

    def test_batch_does_not_overlap(self, doc) -> None:
        """Placed nodes clear each other and the board, except fallback ones."""
        doc.add_node(make_node("blocker", 760, 0, label="in the way"))
        payload = {
            f"Category {c}": [
                {"title": f"Idea {c}{i}", "reason": "a reason that wraps over lines", "sub_branches": ["s1", "s2"]}
                for i in range(3)
            ]
            for c in "ABC"
        }
        solver = PlacementSolver()
        result = SuggestionMaterializer(doc, placement=solver).materialize("1", payload)
        assert len(result.nodes) == 3 + 9 + 18

        rects = {n.id: Rect.at(n.position, estimate_node_size(n)) for n in doc.nodes}
        new_ids = [n.id for n in result.nodes if n.id not in result.fallback_ids]
        for a, b in itertools.combinations(new_ids, 2):
            assert not solver.overlaps(rects[a], rects[b])
        for new_id in new_ids:
            for old_id in ("1", "blocker"):
                assert not solver.overlaps(rects[new_id], rects[old_id])

    def test_unknown_focal_leaves_board_untouched(self, doc) -> None:
        with pytest.raises(UnknownNodeError):
            SuggestionMaterializer(doc).materialize("ghost", {"A": ["x"]})
        assert not doc.is_dirty
        assert len(doc) == 1

    def test_rejected_payload_leaves_board_untouched(self, doc) -> None:
        with pytest.raises(ValidationError):
            SuggestionMaterializer(doc).materialize("1", {"A": 5})
        assert not doc.is_dirty

    def test_built_tree_is_well_formed(self, doc) -> None:
        tree = SuggestionTree({"A": [ConceptItem(title="x", reason="r")]})
        result = SuggestionMaterializer(doc).materialize("1", tree)
        assert result.outcome is RepairOutcome.WELL_FORMED
        assert [n.label for n in result.nodes] == ["A", "x"]

    def test_empty_built_tree_rejected(self, doc) -> None:
        with pytest.raises(ValidationError):
            SuggestionMaterializer(doc).materialize("1", SuggestionTree({}))
        with pytest.raises(ValidationError):
            SuggestionMaterializer(doc).materialize("1", SuggestionTree({"A": []}))
        assert not doc.is_dirty
        assert len(doc) == 1

    def test_deep_built_tree_truncated(self, doc) -> None:
        tree = SuggestionTree.model_validate({"A": [nested(5)]})
        result = SuggestionMaterializer(doc).materialize("1", tree)
        assert result.outcome is RepairOutcome.REPAIRED
        assert [n.label for n in result.nodes] == ["A", "level 1", "level 2", "level 3"]

    def test_ids_avoid_existing(self, doc) -> None:
        gen = IdGenerator(clock=lambda: 0, random_suffix=lambda: "r")
        doc.add_node(make_node("node-1-0-r"))
        result = SuggestionMaterializer(doc, ids=gen).materialize("1", {"A": ["x"]})
        assert "node-1-0-r" not in {n.id for n in result.nodes}
        assert len({n.id for n in doc.nodes}) == len(doc)

    def test_reason_html_escapes_and_wraps(self) -> None:
        assert reason_html("a <b> c d") == "<p>a &lt;b&gt; c<br>d</p>"
        assert reason_html("") == ""
