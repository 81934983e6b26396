"""Plain-text extraction from node rich text."""

from __future__ import annotations

import re
from html.parser import HTMLParser

_BLOCK_TAGS = frozenset({"p", "div", "br", "li", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "tr"})
_SPACES = re.compile(r"[ \t\r\f\v]+")


class _TextExtractor(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._chunks: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _BLOCK_TAGS:
            self._chunks.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in _BLOCK_TAGS:
            self._chunks.append("\n")

    def handle_data(self, data: str) -> None:
        self._chunks.append(data)

    def get_text(self) -> str:
        return "".join(self._chunks)


def html_to_text(html_text: str) -> str:
    """Strip markup, unescape entities and collapse whitespace.

    Block-level tags become line breaks; blank lines are dropped.
    """
    if not html_text:
        return ""
    if "<" not in html_text and "&" not in html_text:
        return _SPACES.sub(" ", html_text).strip()
    extractor = _TextExtractor()
    extractor.feed(html_text)
    extractor.close()
    lines = (_SPACES.sub(" ", line).strip() for line in extractor.get_text().splitlines())
    return "\n".join(line for line in lines if line)
