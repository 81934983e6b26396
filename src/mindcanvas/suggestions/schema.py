"""Suggestion tree types and boundary repair.

AI output is untrusted. ``repair_suggestions`` turns whatever arrived into
a canonical SuggestionTree (or rejects it) before anything touches the
document, and reports what it had to change.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel

from mindcanvas.errors import ValidationError
from mindcanvas.logging import get_logger
from mindcanvas.suggestions.parsing import DEFAULT_CATEGORY, extract_json

log = get_logger("suggestions")

NO_REASON = "No reason provided"
INVALID_ITEM_REASON = "Invalid data converted to concept"
DEFAULT_MAX_DEPTH = 3


class ConceptItem(BaseModel):
    """One suggested concept, optionally with nested sub-branches."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    reason: str = NO_REASON
    sub_branches: list[ConceptItem] = Field(default_factory=list)

    def depth(self) -> int:
        """Generations in this branch, counting this item as 1."""
        return 1 + max((s.depth() for s in self.sub_branches), default=0)

    def descendant_count(self) -> int:
        return sum(1 + s.descendant_count() for s in self.sub_branches)


class SuggestionTree(RootModel[dict[str, list[ConceptItem]]]):
    """Mapping of category name to its concepts, in response order."""

    @property
    def categories(self) -> dict[str, list[ConceptItem]]:
        return self.root

    def concept_count(self) -> int:
        return sum(1 + item.descendant_count() for items in self.root.values() for item in items)

    def depth(self) -> int:
        return max((item.depth() for items in self.root.values() for item in items), default=0)


class RepairOutcome(Enum):
    WELL_FORMED = "well_formed"
    REPAIRED = "repaired"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


@dataclass
class RepairResult:
    outcome: RepairOutcome
    tree: SuggestionTree | None = None
    issues: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.tree is not None

    def unwrap(self) -> SuggestionTree:
        """Return the tree or raise ValidationError if it was rejected."""
        if self.tree is None:
            raise ValidationError("Suggestion tree rejected", list(self.issues))
        return self.tree


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class _Repairer:
    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self.issues: list[str] = []

    def note(self, message: str) -> None:
        self.issues.append(message)

    def item(self, raw: Any, index: int, depth: int, where: str) -> ConceptItem:
        placeholder = f"Concept {index + 1}" if depth == 1 else f"Sub-concept {index + 1}"
        if isinstance(raw, str):
            self.note(f"{where}: bare string converted to concept")
            return ConceptItem(title=raw, reason=NO_REASON)
        if not isinstance(raw, dict):
            self.note(f"{where}: {type(raw).__name__} converted to placeholder concept")
            return ConceptItem(title=placeholder, reason=INVALID_ITEM_REASON)

        title = raw.get("title")
        if title is None or title == "":
            self.note(f"{where}: missing title")
            title = placeholder
        elif not isinstance(title, str):
            self.note(f"{where}: non-string title")
            title = _as_text(title)

        reason = raw.get("reason")
        if reason is None or reason == "":
            self.note(f"{where}: missing reason")
            reason = NO_REASON
        elif not isinstance(reason, str):
            self.note(f"{where}: non-string reason")
            reason = _as_text(reason)

        subs: list[ConceptItem] = []
        raw_subs = raw.get("sub_branches")
        if raw_subs is not None:
            if not isinstance(raw_subs, list):
                self.note(f"{where}: sub_branches is not a list, dropped")
            elif raw_subs and depth >= self.max_depth:
                self.note(f"{where}: sub_branches deeper than {self.max_depth} truncated")
            else:
                subs = [self.item(s, i, depth + 1, f"{where}.sub_branches[{i}]") for i, s in enumerate(raw_subs)]

        return ConceptItem(title=title, reason=reason, sub_branches=subs)

    def category(self, name: str, raw: Any) -> list[ConceptItem] | None:
        if isinstance(raw, list):
            return [self.item(r, i, 1, f"{name}[{i}]") for i, r in enumerate(raw)]
        if isinstance(raw, dict):
            self.note(f"{name}: object converted to concept list")
            return [ConceptItem(title=str(k), reason=_as_text(v) or NO_REASON) for k, v in raw.items()]
        if isinstance(raw, str):
            self.note(f"{name}: single string converted to concept list")
            return [ConceptItem(title=raw, reason=NO_REASON)]
        self.note(f"{name}: {type(raw).__name__} is not a concept list")
        return None


def repair_suggestions(raw: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> RepairResult:
    """Validate and repair an AI suggestion payload.

    Accepts a mapping, a legacy flat list, or raw response text. The result
    is REJECTED when no mapping can be recovered, a category holds something
    other than a list, mapping or string, or no concepts remain.
    """
    repairer = _Repairer(max_depth)

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            repairer.note("response was not plain JSON, extracted leniently")
            raw = extract_json(raw)

    if isinstance(raw, list):
        repairer.note("legacy flat list wrapped in a category")
        raw = {DEFAULT_CATEGORY: raw}

    if not isinstance(raw, dict):
        repairer.note(f"expected an object of categories, got {type(raw).__name__}")
        return RepairResult(RepairOutcome.REJECTED, None, repairer.issues)

    categories: dict[str, list[ConceptItem]] = {}
    for key, value in raw.items():
        items = repairer.category(str(key), value)
        if items is None:
            return RepairResult(RepairOutcome.REJECTED, None, repairer.issues)
        categories[str(key)] = items

    tree = SuggestionTree(categories)
    if tree.concept_count() == 0:
        repairer.note("no concepts found")
        return RepairResult(RepairOutcome.REJECTED, None, repairer.issues)

    outcome = RepairOutcome.REPAIRED if repairer.issues else RepairOutcome.WELL_FORMED
    if repairer.issues:
        log.info("Repaired suggestion tree: %s", "; ".join(repairer.issues))
    return RepairResult(outcome, tree, repairer.issues)
