"""Board document model, history and interchange format."""

from mindcanvas.board.document import DocumentChange, GraphDocument, seed_node
from mindcanvas.board.history import HistoryManager, HistorySnapshot
from mindcanvas.board.interchange import BoardRecord, export_board, parse_board
from mindcanvas.board.models import Edge, HandleSide, Node, NodeContent, Position

__all__ = [
    "BoardRecord",
    "DocumentChange",
    "Edge",
    "GraphDocument",
    "HandleSide",
    "HistoryManager",
    "HistorySnapshot",
    "Node",
    "NodeContent",
    "Position",
    "export_board",
    "parse_board",
    "seed_node",
]
