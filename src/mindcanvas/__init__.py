"""mindcanvas: board graph state engine for an AI-assisted mind-mapping canvas."""

__version__ = "0.1.0"

# Public API
from mindcanvas.board import (
    Edge,
    GraphDocument,
    HandleSide,
    HistoryManager,
    HistorySnapshot,
    Node,
    NodeContent,
    Position,
    export_board,
    parse_board,
)
from mindcanvas.board.persistence import LocalBoardCache, PersistenceGateway, RemoteBoardStore, SaveResult
from mindcanvas.board.session import BoardSession
from mindcanvas.config import Config, get_config, load_config
from mindcanvas.context import ContextSerializer, NodeContext
from mindcanvas.errors import (
    BoardError,
    DanglingEdgeError,
    PersistenceFailure,
    UnknownNodeError,
    ValidationError,
)
from mindcanvas.layout import LayoutDirection, LayoutEngine, PlacementSolver, apply_layout
from mindcanvas.suggestions import (
    ConceptItem,
    RepairOutcome,
    SuggestionMaterializer,
    SuggestionTree,
    repair_suggestions,
)
from mindcanvas.sync import RenderPatch, SyncCoordinator, reconcile

__all__ = [
    # Session
    "BoardSession",
    # Document
    "GraphDocument",
    "HistoryManager",
    "HistorySnapshot",
    "Node",
    "NodeContent",
    "Edge",
    "HandleSide",
    "Position",
    "export_board",
    "parse_board",
    # Persistence
    "LocalBoardCache",
    "RemoteBoardStore",
    "PersistenceGateway",
    "SaveResult",
    # Sync
    "SyncCoordinator",
    "RenderPatch",
    "reconcile",
    # Layout
    "LayoutDirection",
    "LayoutEngine",
    "PlacementSolver",
    "apply_layout",
    # Context
    "ContextSerializer",
    "NodeContext",
    # Suggestions
    "ConceptItem",
    "SuggestionTree",
    "RepairOutcome",
    "SuggestionMaterializer",
    "repair_suggestions",
    # Config
    "Config",
    "load_config",
    "get_config",
    # Errors
    "BoardError",
    "ValidationError",
    "DanglingEdgeError",
    "UnknownNodeError",
    "PersistenceFailure",
]
