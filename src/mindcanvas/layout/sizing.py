"""Node size estimation from content.

Sizes are estimated from text, not measured, so layout and placement can run
without a renderer.
"""

from __future__ import annotations

from dataclasses import dataclass

from mindcanvas.board.models import Node
from mindcanvas.config.schema import LayoutConfig
from mindcanvas.context.text import html_to_text


@dataclass(frozen=True, slots=True)
class Size:
    width: float
    height: float


def wrap_words(text: str, words_per_line: int = 3) -> str:
    """Break text onto a new line every ``words_per_line`` words."""
    words = text.split()
    if not words:
        return ""
    step = max(1, words_per_line)
    return "\n".join(" ".join(words[i : i + step]) for i in range(0, len(words), step))


def estimate_text_size(text: str, config: LayoutConfig | None = None) -> Size:
    config = config or LayoutConfig()
    lines = wrap_words(text, config.words_per_line).splitlines() or [""]
    longest = max(len(line) for line in lines)
    width = longest * config.char_width + config.padding
    width = min(max(width, config.min_width), config.max_width)
    height = config.base_height + len(lines) * config.line_height
    return Size(width, height)


def estimate_node_size(node: Node, config: LayoutConfig | None = None) -> Size:
    """Estimate the rendered box of a node from its label and plain-text body."""
    body = html_to_text(node.content.text)
    text = f"{node.label} {body}".strip()
    return estimate_text_size(text, config)
