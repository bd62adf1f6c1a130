from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from datetime import datetime

import pytest

from maelnode import logger
from maelnode.config import LoggingConfig


@pytest.fixture
def stderr() -> Iterator[io.StringIO]:
    stream = io.StringIO()
    previous = logger._handler.setStream(stream)
    yield stream
    logger._handler.setStream(previous)
    logger.set_formatter(logger.verbose)


def test_level_parse() -> None:
    assert logger.Level.parse("warn") is logger.Level.WARN
    assert logger.Level.parse("DEBUG") is logger.Level.DEBUG
    with pytest.raises(ValueError, match="unknown log level"):
        logger.Level.parse("loud")


def test_module_loggers_are_children() -> None:
    log = logger.get_logger("runtime")
    assert log.name == "maelnode.runtime"
    assert log.parent is logging.getLogger("maelnode")


def test_helpers_write_fields(stderr: io.StringIO) -> None:
    logger.set_level(logger.Level.INFO)

    logger.info("gossip round", neighbors=3, node="n1")

    text = stderr.getvalue()
    assert "[INFO]" in text
    assert "gossip round" in text
    assert "neighbors=3" in text
    assert "node='n1'" in text


def test_level_filters_records(stderr: io.StringIO) -> None:
    logger.set_level(logger.Level.WARN)

    logger.info("hidden")
    logger.warn("shown")

    assert "hidden" not in stderr.getvalue()
    assert "shown" in stderr.getvalue()


def test_off_silences_errors(stderr: io.StringIO) -> None:
    logger.set_level(logger.Level.OFF)
    logger.error("nothing")
    assert stderr.getvalue() == ""


def test_child_logger_records_use_formatter(stderr: io.StringIO) -> None:
    logger.set_level(logger.Level.DEBUG)

    logger.get_logger("broadcast").debug("-> %s %s", "n2", "Gossip")

    assert "[DEBUG] maelnode.broadcast:" in stderr.getvalue()
    assert "-> n2 Gossip" in stderr.getvalue()


def test_configure_applies_logging_table(stderr: io.StringIO) -> None:
    logger.configure(LoggingConfig(level="error", format="minimal", colors=False))

    logger.warn("quiet")
    logger.error("loud")

    assert stderr.getvalue() == "[ERROR] loud\n"


def test_formatters_without_colors() -> None:
    line = logger.LogLine(
        time=datetime(2024, 1, 2, 3, 4, 5, 678000),
        level=logger.Level.WARN,
        location="m:f:1",
        message="slow",
        fields={"ms": 12, "node": "n1"},
    )

    assert logger.verbose(line) == "03:04:05.678 [WARN] m:f:1 slow ms=12 node='n1'"
    assert logger.compact(line) == "03:04:05 [WARN] slow ms=12 node='n1'"
    assert logger.minimal(line) == "[WARN] slow"


def test_level_of_stdlib_levels() -> None:
    assert logger.Level.of(logging.CRITICAL) is logger.Level.ERROR
    assert logger.Level.of(logging.WARNING) is logger.Level.WARN
    assert logger.Level.of(5) is logger.Level.DEBUG
