"""Focal-node context for AI prompts."""

from mindcanvas.context.serializer import ContextEntry, ContextSerializer, NodeContext
from mindcanvas.context.text import html_to_text

__all__ = ["ContextEntry", "ContextSerializer", "NodeContext", "html_to_text"]
