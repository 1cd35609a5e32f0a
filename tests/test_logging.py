"""
Tests for logging setup.
"""

import logging

import pytest

from ops.logging import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_creates_log_directory_and_file(tmp_path):
    log_path = tmp_path / "logs" / "detector.log"

    setup_logging(str(log_path), "DEBUG")
    logging.debug("handle new frame")

    assert logging.getLogger().level == logging.DEBUG
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "handle new frame" in log_path.read_text()


def test_level_is_case_insensitive(tmp_path):
    setup_logging(str(tmp_path / "d.log"), "warning")
    assert logging.getLogger().level == logging.WARNING


def test_stream_only_without_path():
    setup_logging("", "INFO")
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert not isinstance(handlers[0], logging.FileHandler)
