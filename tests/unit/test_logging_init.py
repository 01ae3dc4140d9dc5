from __future__ import annotations

import logging

from gridtracker.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    enable_debug,
    get_logger,
    log_summary,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter(clean_logging):
    logger = setup_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False
    # 冪等
    assert setup_logging() is logger
    assert len(logger.handlers) == 1


def test_labeled_prefixes(clean_logging, capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logger.error("broken")
    log_summary("records=1")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO hello", "WARN careful", "ERROR broken", "SUMMARY records=1"]


def test_module_loggers_propagate_to_package_logger(clean_logging, capsys):
    setup_logging()
    logging.getLogger("gridtracker.services.control").warning("from a module")
    assert "WARN from a module" in capsys.readouterr().out


def test_debug_hidden_until_enabled(clean_logging, capsys):
    logger = get_logger()
    logger.debug("invisible")
    enable_debug(logger)
    logger.debug("visible")
    out = capsys.readouterr().out
    assert "invisible" not in out
    assert "DEBUG visible" in out


def test_formatter_appends_exception():
    formatter = LabeledFormatter()
    try:
        raise ValueError("bad")
    except ValueError:
        import sys
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    text = formatter.format(record)
    assert text.startswith("ERROR failed")
    assert "ValueError: bad" in text


def test_summary_level_label():
    record = logging.LogRecord("x", SUMMARY_LEVEL, __file__, 1, "done", None, None)
    assert LabeledFormatter().format(record) == "SUMMARY done"
