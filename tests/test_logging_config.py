"""
Logging Setup Tests
===================
Console + dated file handlers installed on the root logger.
"""
import logging

import pytest

from readme_engine.utils.logging_config import ColoredFormatter, setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in saved_handlers:
            handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def _record(level, message="registry ready"):
    return logging.LogRecord("readme_engine.test", level, __file__, 1, message, None, None)


def test_file_handler_writes_dated_log(root_logger, tmp_path):
    log_file = setup_logging(level=logging.DEBUG, log_dir=str(tmp_path / "logs"), use_color=False)

    logging.getLogger("readme_engine.registry").debug("analyzer admitted")
    for handler in root_logger.handlers:
        handler.flush()

    assert log_file.startswith(str(tmp_path / "logs"))
    assert log_file.endswith(".log")
    with open(log_file) as f:
        assert "analyzer admitted" in f.read()
    assert logging.getLogger("readme_engine").level == logging.DEBUG


def test_empty_log_dir_disables_file_handler(root_logger):
    assert setup_logging(log_dir="", use_color=False) is None
    assert not any(isinstance(h, logging.FileHandler) for h in root_logger.handlers)
    assert len(root_logger.handlers) == 1


def test_repeated_setup_does_not_duplicate_handlers(root_logger, tmp_path):
    setup_logging(log_dir=str(tmp_path), use_color=False)
    setup_logging(log_dir=str(tmp_path), use_color=False)
    assert len(root_logger.handlers) == 2


def test_colored_formatter():
    colored = ColoredFormatter(use_color=True).format(_record(logging.WARNING))
    plain = ColoredFormatter(use_color=False).format(_record(logging.WARNING))

    assert colored.startswith(ColoredFormatter.yellow)
    assert "\x1b[" not in plain
    assert "WARNING" in plain and "registry ready" in plain


def test_custom_level_falls_back_to_plain_format():
    line = ColoredFormatter().format(_record(25))
    assert "\x1b[" not in line
    assert "registry ready" in line
