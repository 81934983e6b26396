"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from mindcanvas.config import reset_config
from tests.utils import FakeClock

# Redundant with pyproject.toml but keeps the plugin explicit
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    """A manually advanced millisecond clock."""
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep tests away from real user/system config and env overrides."""
    monkeypatch.delenv("MC_LOG", raising=False)
    monkeypatch.delenv("MC_API_BASE", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    reset_config()
    yield
    reset_config()
