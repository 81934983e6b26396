"""Tests for logging level resolution."""

from __future__ import annotations

import logging

from mindcanvas.config.schema import LoggingConfig
from mindcanvas.logging import TRACE, VERBOSE, get_logger, resolve_level


class TestResolveLevel:
    def test_default_is_info(self) -> None:
        assert resolve_level(None) == logging.INFO
        assert resolve_level(LoggingConfig()) == logging.INFO

    def test_level_names(self) -> None:
        assert resolve_level(LoggingConfig(level="debug")) == logging.DEBUG
        assert resolve_level(LoggingConfig(level="trace")) == TRACE
        assert resolve_level(LoggingConfig(level="bogus")) == logging.INFO

    def test_verbose_wins(self) -> None:
        config = LoggingConfig(level="ERROR", verbose=3)
        assert resolve_level(config) == VERBOSE
        assert resolve_level(LoggingConfig(verbose=0)) == logging.ERROR
        assert resolve_level(LoggingConfig(verbose=9)) == TRACE


def test_child_loggers_share_root() -> None:
    assert get_logger().name == "mindcanvas"
    assert get_logger("sync").name == "mindcanvas.sync"
    assert get_logger("sync").parent is get_logger()
