"""Tests for the configuration module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from mindcanvas.config import get_config, load_config, reset_config
from mindcanvas.config.merge import deep_merge, merge_configs
from mindcanvas.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_simple_override(self) -> None:
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Nested dicts are merged key by key."""
        base = {"sync": {"cooldown_ms": 500, "debounce_ms": 300}}
        result = deep_merge(base, {"sync": {"debounce_ms": 100}})
        assert result["sync"] == {"cooldown_ms": 500, "debounce_ms": 100}

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None})["a"] == 1

    def test_list_replaced_not_merged(self) -> None:
        assert deep_merge({"items": [1, 2, 3]}, {"items": [4, 5]})["items"] == [4, 5]

    def test_base_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_merge_configs_multiple(self) -> None:
        """Later configs win."""
        result = merge_configs({"a": 1}, {}, {"a": 2, "b": 1}, {"b": 3})
        assert result == {"a": 2, "b": 3}


class TestConfigPaths:
    """Test platform-specific path resolution."""

    def test_windows_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        monkeypatch.setenv("PROGRAMDATA", "C:\\ProgramData")
        path = get_system_config_path()
        assert path is not None
        assert path.parts[-2:] == ("mindcanvas", "config.yaml")

    def test_unix_system_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        assert get_system_config_path() == Path("/etc/mindcanvas/config.yaml")

    def test_unix_user_path_xdg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", "/home/test/.config-custom")
        assert get_user_config_path() == Path("/home/test/.config-custom/mindcanvas/config.yaml")

    def test_project_config_path(self) -> None:
        assert get_project_config_path("/proj") == Path("/proj/.mc/config.yaml")

    def test_get_config_paths_order(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """System, then user, then project."""
        monkeypatch.setattr(sys, "platform", "linux")
        paths = get_config_paths("/proj")
        assert paths[0] == Path("/etc/mindcanvas/config.yaml")
        assert paths[-1] == Path("/proj/.mc/config.yaml")
        assert len(paths) == 3


class TestConfigLoading:
    """Test loading config from YAML files."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        (tmp_path / ".mc").mkdir()
        return tmp_path

    def _write(self, project: Path, text: str) -> None:
        (project / ".mc" / "config.yaml").write_text(text, encoding="utf-8")

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(project_root=str(tmp_path))
        assert config.sync.cooldown_ms == 500
        assert config.sync.debounce_ms == 300
        assert config.history.max_depth is None
        assert config.layout.rank_sep == 200
        assert config.layout.node_sep == 100
        assert config.placement.max_offset == 500
        assert config.suggestions.max_depth == 3

    def test_load_yaml_config(self, project: Path) -> None:
        self._write(
            project,
            "sync:\n  debounce_ms: 150\nhistory:\n  max_depth: 20\nlayout:\n  rank_sep: 120\n",
        )
        config = load_config(project_root=str(project))
        assert config.sync.debounce_ms == 150
        assert config.sync.cooldown_ms == 500
        assert config.history.max_depth == 20
        assert config.layout.rank_sep == 120

    def test_env_overrides_config(self, project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        self._write(project, "persistence:\n  api_base: http://file\nlogging:\n  file: /tmp/a.log\n")
        monkeypatch.setenv("MC_API_BASE", "http://env")
        monkeypatch.setenv("MC_LOG", "/tmp/env.log")
        config = load_config(project_root=str(project))
        assert config.persistence.api_base == "http://env"
        assert config.logging.file == "/tmp/env.log"

    def test_invalid_yaml_uses_defaults(self, project: Path) -> None:
        self._write(project, "sync: [unclosed\n")
        config = load_config(project_root=str(project))
        assert config.sync.debounce_ms == 300

    def test_unknown_keys_ignored(self, project: Path) -> None:
        self._write(project, "placement:\n  step: 25\n  bogus: 1\n")
        config = load_config(project_root=str(project))
        assert config.placement.step == 25

    def test_non_mapping_section_ignored(self, project: Path) -> None:
        self._write(project, "layout: 12\n")
        assert load_config(project_root=str(project)).layout.rank_sep == 200

    def test_extra_sections_preserved(self, project: Path) -> None:
        self._write(project, "theme:\n  dark: true\n")
        assert load_config(project_root=str(project)).extra == {"theme": {"dark": True}}


class TestConfigCaching:
    """Test config caching behaviour."""

    def test_get_config_caches(self) -> None:
        assert get_config() is get_config()

    def test_reset_clears_cache(self) -> None:
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_project_config_not_cached(self, tmp_path: Path) -> None:
        global_config = get_config()
        project_config = load_config(project_root=str(tmp_path))
        assert project_config is not global_config
        assert get_config() is global_config
