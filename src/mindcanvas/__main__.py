"""Command-line entry point for working with exported board files.

Usage:
    python -m mindcanvas layout board.json --direction lr
    python -m mindcanvas context board.json NODE_ID
    python -m mindcanvas expand board.json NODE_ID suggestions.txt -o out.json
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from mindcanvas.board.document import GraphDocument
from mindcanvas.board.history import HistoryManager
from mindcanvas.board.interchange import export_board, parse_board
from mindcanvas.config import load_config
from mindcanvas.config.schema import Config
from mindcanvas.context.serializer import ContextSerializer
from mindcanvas.errors import BoardError
from mindcanvas.layout.engine import LayoutEngine, apply_layout
from mindcanvas.layout.placement import PlacementSolver
from mindcanvas.logging import get_logger, setup_logging
from mindcanvas.suggestions.materializer import SuggestionMaterializer

log = get_logger()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mindcanvas",
        description="Lay out, inspect and expand exported mind-map boards",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "--project",
        type=Path,
        help="Project directory for .mc/config.yaml",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    layout_parser = subparsers.add_parser("layout", help="Auto-layout a board file")
    layout_parser.add_argument("board", type=Path)
    layout_parser.add_argument("--direction", choices=["tb", "lr", "auto"], default="auto")
    layout_parser.add_argument("-o", "--output", type=Path, help="Write here instead of stdout")

    context_parser = subparsers.add_parser("context", help="Print the context of a node")
    context_parser.add_argument("board", type=Path)
    context_parser.add_argument("node_id")
    context_parser.add_argument("--messages", action="store_true", help="Print as prompt messages (JSON)")

    expand_parser = subparsers.add_parser("expand", help="Materialize AI suggestions under a node")
    expand_parser.add_argument("board", type=Path)
    expand_parser.add_argument("node_id")
    expand_parser.add_argument("suggestions", help="File with the AI response, or - for stdin")
    expand_parser.add_argument("-o", "--output", type=Path, help="Write here instead of stdout")

    return parser


def _load_document(path: Path, config: Config) -> GraphDocument:
    with open(path, encoding="utf-8") as f:
        record = parse_board(json.load(f))
    return GraphDocument(
        record.id or path.stem,
        name=record.name or path.stem,
        nodes=record.nodes,
        edges=record.edges,
        history=HistoryManager(max_depth=config.history.max_depth),
    )


def _write(payload: Any, output: Path | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")


def _run(args: argparse.Namespace, config: Config) -> int:
    document = _load_document(args.board, config)

    if args.command == "layout":
        result = apply_layout(document, args.direction, engine=LayoutEngine(config.layout))
        log.info("Laid out %d nodes %s with %d crossings", len(result.positions), result.direction, result.crossings)
        _write(export_board(document), args.output)
        return 0

    if args.command == "context":
        context = ContextSerializer(document).serialize(args.node_id)
        if args.messages:
            print(json.dumps(context.to_messages(), indent=2, ensure_ascii=False))
        else:
            print(context.ascii_tree, end="")
            for entry in context.nodes:
                print(f"{entry.label}: {entry.content or 'No content'}")
        return 0

    if args.command == "expand":
        raw = sys.stdin.read() if args.suggestions == "-" else Path(args.suggestions).read_text(encoding="utf-8")
        materializer = SuggestionMaterializer(
            document,
            config=config.suggestions,
            layout_config=config.layout,
            placement=PlacementSolver(config.placement),
        )
        result = materializer.materialize(args.node_id, raw)
        for issue in result.issues:
            log.warning("Suggestion repair: %s", issue)
        _write(export_board(document), args.output)
        return 0

    return 2


def main(argv: Sequence[str] | None = None) -> int:
    args = create_parser().parse_args(argv)

    # Load config before logging so config.logging applies
    config = load_config(project_root=str(args.project) if args.project else None)
    if args.verbose is not None:
        config.logging.verbose = min(1 + args.verbose, 4)
    setup_logging(config.logging)

    try:
        return _run(args, config)
    except BoardError as e:
        print(f"mindcanvas: {e}", file=sys.stderr)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"mindcanvas: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
