"""Lenient extraction of JSON from AI response text.

Model output often wraps JSON in prose or code fences, uses curly quotes or
leaves trailing commas. ``extract_json`` tries progressively looser
strategies and always returns something: the last resort is an empty
``{"suggestions": []}`` tree.
"""

from __future__ import annotations

import json
import re
from typing import Any

from mindcanvas.logging import get_logger

log = get_logger("suggestions")

DEFAULT_CATEGORY = "suggestions"

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CATEGORY_ARRAY = re.compile(r'"([^"]+)"\s*:\s*\[((?:[^\[\]]|\[[^\[\]]*\])*)\]')
_QUOTED = re.compile(r'"((?:\\"|[^"])+?)"')
_FIRST_CATEGORY_KEY = re.compile(r'"([^"\']+)"\s*:\s*\[')
_BOM = chr(0xFEFF)
_SMART_QUOTES = str.maketrans({0x201C: '"', 0x201D: '"', 0x2018: "'", 0x2019: "'"})


def clean_text(raw: str) -> str:
    """Drop a BOM, straighten curly quotes and remove trailing commas."""
    text = raw.lstrip(_BOM).translate(_SMART_QUOTES)
    text = text.replace("\\'", "'")
    return _TRAILING_COMMA.sub(r"\1", text)


def _try_load(text: str) -> Any | None:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _between(text: str, opener: str, closer: str) -> Any | None:
    start, end = text.find(opener), text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return _try_load(_TRAILING_COMMA.sub(r"\1", text[start : end + 1]))


def _unescape(item: str) -> str:
    return item.replace('\\"', '"')


def _scrape_categories(text: str) -> dict[str, list[str]]:
    categories: dict[str, list[str]] = {}
    for match in _CATEGORY_ARRAY.finditer(text):
        items = [_unescape(m.group(1)) for m in _QUOTED.finditer(match.group(2)) if m.group(1)]
        if items:
            categories[match.group(1)] = items
    return categories


def _scrape_strings(text: str) -> dict[str, list[str]]:
    key = _FIRST_CATEGORY_KEY.search(text)
    category = key.group(1) if key else DEFAULT_CATEGORY
    items = [_unescape(m.group(1)) for m in _QUOTED.finditer(text) if m.group(1) and m.group(1) != category]
    return {category: items} if items else {}


def extract_json(raw: str) -> Any:
    """Pull a JSON value out of free-form text.

    Strategies, in order: the whole cleaned text, the first ``{`` to the last
    ``}``, the first ``[`` to the last ``]``, ``"category": [...]`` patterns,
    and finally every quoted string filed under the first array key seen.

    Raises:
        TypeError: ``raw`` is not a string.
    """
    if not isinstance(raw, str):
        raise TypeError(f"expected str, got {type(raw).__name__}")
    if not raw.strip():
        log.warning("Empty AI response, using an empty suggestion tree")
        return {DEFAULT_CATEGORY: []}

    text = clean_text(raw)
    for strategy in (
        lambda: _try_load(text),
        lambda: _between(text, "{", "}"),
        lambda: _between(text, "[", "]"),
    ):
        value = strategy()
        if value is not None:
            return value

    scraped = _scrape_categories(text) or _scrape_strings(text)
    if scraped:
        log.info("Recovered %d categor(ies) from malformed AI response", len(scraped))
        return scraped

    log.warning("No JSON found in AI response, using an empty suggestion tree")
    return {DEFAULT_CATEGORY: []}
