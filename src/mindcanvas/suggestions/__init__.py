"""AI suggestion trees: boundary repair and materialization onto the board."""

from mindcanvas.suggestions.ids import IdGenerator
from mindcanvas.suggestions.materializer import MaterializationResult, SuggestionMaterializer
from mindcanvas.suggestions.parsing import extract_json
from mindcanvas.suggestions.schema import (
    ConceptItem,
    RepairOutcome,
    RepairResult,
    SuggestionTree,
    repair_suggestions,
)

__all__ = [
    "ConceptItem",
    "IdGenerator",
    "MaterializationResult",
    "RepairOutcome",
    "RepairResult",
    "SuggestionMaterializer",
    "SuggestionTree",
    "extract_json",
    "repair_suggestions",
]
