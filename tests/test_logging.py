"""Tests for logging setup."""

import logging

from coachmem.core.logging import get_logger, setup_logging


def test_get_logger_is_package_child():
    assert get_logger("memory.gate").name == "coachmem.memory.gate"


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "logs" / "coachmem.log"

    setup_logging("debug", log_file)
    logger = setup_logging("debug", log_file)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    get_logger("memory.gate").debug("Rejected short memory")
    for handler in logger.handlers:
        handler.flush()
    assert "coachmem.memory.gate" in log_file.read_text(encoding="utf-8")

    setup_logging(logging.WARNING)
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_unknown_level_name_falls_back_to_info():
    assert setup_logging("chatty").level == logging.INFO
