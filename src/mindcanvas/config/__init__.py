"""Configuration management for mindcanvas.

Hierarchical YAML configuration with:
- System-level config (/etc/mindcanvas/ or %PROGRAMDATA%)
- User-level config (~/.config/mindcanvas/, ~/.mc/ or %APPDATA%)
- Project-level config (<project_root>/.mc/)
- Environment variable overrides (highest priority)

Example usage:
    from mindcanvas.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.sync.cooldown_ms)
"""

from mindcanvas.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from mindcanvas.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_project_dir,
    get_system_config_path,
    get_user_config_path,
)
from mindcanvas.config.schema import (
    Config,
    HistoryConfig,
    LayoutConfig,
    LoggingConfig,
    PersistenceConfig,
    PlacementConfig,
    SuggestionConfig,
    SyncConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "SyncConfig",
    "HistoryConfig",
    "LayoutConfig",
    "PlacementConfig",
    "SuggestionConfig",
    "PersistenceConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
    "get_project_dir",
]
