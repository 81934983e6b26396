"""Configuration schema dataclasses for mindcanvas.

Defines the structure of configuration at all levels (system, user, project).
Every field has a default so partial configs merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SyncConfig:
    """Render/document synchronisation timing."""

    cooldown_ms: int = 500  # Quiet period after a drag ends
    debounce_ms: int = 300  # Coalescing window for non-drag edits


@dataclass
class HistoryConfig:
    """Undo/redo configuration."""

    max_depth: int | None = None  # None keeps every snapshot


@dataclass
class LayoutConfig:
    """Rank layout spacing and node size estimation.

    Example config.yaml:
        layout:
          rank_sep: 200
          node_sep: 100
          words_per_line: 3
    """

    rank_sep: float = 200.0
    node_sep: float = 100.0
    margin: float = 50.0
    words_per_line: int = 3
    char_width: float = 8.0
    padding: float = 40.0
    min_width: float = 150.0
    max_width: float = 300.0
    base_height: float = 60.0
    line_height: float = 20.0


@dataclass
class PlacementConfig:
    """Collision-free placement search."""

    margin_x: float = 50.0
    margin_y: float = 30.0
    step: float = 50.0
    max_offset: float = 500.0
    fallback_dx: float = 600.0
    fallback_dy: float = 300.0


@dataclass
class SuggestionConfig:
    """Geometry for materialised suggestion trees."""

    max_depth: int = 3  # Concept generations below a category
    node_height: float = 150.0
    category_margin: float = 40.0
    category_offset_x: float = 500.0
    concept_offset_x: float = 300.0
    sub_branch_offset_x: float = 200.0
    sub_branch_offset_y: float = 100.0


@dataclass
class PersistenceConfig:
    """Local cache and remote board store."""

    api_base: str | None = None  # Remote store disabled when unset
    cache_dir: str | None = None  # Default: <project>/.mc
    timeout: float = 10.0
    autosave_debounce_ms: int = 1000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    sync: SyncConfig = field(default_factory=SyncConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    placement: PlacementConfig = field(default_factory=PlacementConfig)
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are kept here
    extra: dict[str, Any] = field(default_factory=dict)
