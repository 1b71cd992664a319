import logging
from logging.handlers import RotatingFileHandler

import pytest

from formacli.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize(
    "name, expected",
    [("debug", logging.DEBUG), ("INFO", logging.INFO), (None, logging.WARNING), ("chatty", logging.WARNING)],
)
def test_resolve_log_level(name, expected):
    assert resolve_log_level(name) == expected


def test_setup_logging_replaces_handlers(restore_root_logger, tmp_path):
    log_file = tmp_path / "formacli.log"

    setup_logging(log_level=logging.DEBUG, log_file=str(log_file))
    setup_logging(log_level=logging.INFO, log_file=str(log_file))

    root = restore_root_logger
    assert root.level == logging.INFO
    assert len(root.handlers) == 2
    assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
    assert logging.getLogger("httpx").level == logging.WARNING
    for handler in root.handlers:
        handler.close()


def test_unwritable_log_file_keeps_console_logging(restore_root_logger, tmp_path):
    setup_logging(log_level=logging.INFO, log_file=str(tmp_path / "missing-dir" / "formacli.log"))

    root = restore_root_logger
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert not isinstance(root.handlers[0], RotatingFileHandler)
