"""Diagnostic logging on stderr.

Standard output carries the protocol stream, so every log record goes to
stderr through a single handler on the ``maelnode`` logger. Module loggers
are children of it (``maelnode.runtime``, ``maelnode.broadcast``, ...)
and inherit the handler.

Structured fields are passed as keyword arguments to the helpers::

    from maelnode import logger

    logger.info("gossip round", neighbors=3, sent=2)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from maelnode.config import LoggingConfig


class Level(IntEnum):
    """Log levels, valued as their ``logging`` counterparts."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR
    OFF = logging.CRITICAL + 1

    @classmethod
    def parse(cls, name: str) -> Level:
        try:
            return cls[name.upper()]
        except KeyError:
            choices = ", ".join(level.name.lower() for level in cls)
            msg = f"unknown log level {name!r} (expected one of: {choices})"
            raise ValueError(msg) from None

    @classmethod
    def of(cls, levelno: int) -> Level:
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


# ANSI escape codes
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"

_LEVEL_STYLE: dict[Level, tuple[str, ...]] = {
    Level.DEBUG: (MAGENTA,),
    Level.INFO: (CYAN,),
    Level.WARN: (YELLOW, BOLD),
    Level.ERROR: (RED, BOLD),
}

_MESSAGE_STYLE: dict[Level, tuple[str, ...]] = {
    Level.WARN: (YELLOW,),
    Level.ERROR: (RED,),
}

_use_colors: bool = sys.stderr.isatty()


def _paint(text: str, *codes: str) -> str:
    if not _use_colors or not codes:
        return text
    return "".join(codes) + text + RESET


@dataclass(frozen=True)
class LogLine:
    """One record, as handed to a formatter."""

    time: datetime
    level: Level
    location: str
    message: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def tag(self) -> str:
        return _paint(f"[{self.level.name}]", *_LEVEL_STYLE.get(self.level, ()))

    @property
    def suffix(self) -> str:
        rendered = [
            f"{_paint(key, DIM)}={_paint(repr(value), GREEN) if isinstance(value, str) else value}"
            for key, value in self.fields.items()
        ]
        return "".join(f" {part}" for part in rendered)


type Formatter = Callable[[LogLine], str]


def verbose(line: LogLine) -> str:
    stamp = _paint(line.time.strftime("%H:%M:%S.%f")[:-3], DIM)
    message = _paint(line.message, *_MESSAGE_STYLE.get(line.level, ()))
    return f"{stamp} {line.tag} {_paint(line.location, BLUE)} {message}{line.suffix}"


def compact(line: LogLine) -> str:
    stamp = _paint(line.time.strftime("%H:%M:%S"), DIM)
    return f"{stamp} {line.tag} {line.message}{line.suffix}"


def minimal(line: LogLine) -> str:
    return f"{line.tag} {line.message}"


FORMATTERS: dict[str, Formatter] = {
    "verbose": verbose,
    "compact": compact,
    "minimal": minimal,
}

_formatter: Formatter = verbose


class _StderrFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = _formatter(
            LogLine(
                time=datetime.fromtimestamp(record.created),
                level=Level.of(record.levelno),
                location=f"{record.name}:{record.funcName}:{record.lineno}",
                message=record.getMessage(),
                fields=getattr(record, "fields", {}),
            )
        )
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


_root = logging.getLogger("maelnode")
_root.setLevel(Level.INFO)
_root.propagate = False

_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(_StderrFormatter())
_root.addHandler(_handler)


def get_logger(name: str) -> logging.Logger:
    """Child of the package logger, e.g. ``get_logger("runtime")``."""
    return _root.getChild(name)


def set_level(level: Level) -> None:
    _root.setLevel(level)


def set_formatter(fn: Formatter) -> None:
    global _formatter
    _formatter = fn


def set_colors(enabled: bool) -> None:
    global _use_colors
    _use_colors = enabled


def configure(config: LoggingConfig) -> None:
    """Apply the ``[logging]`` table of a node configuration."""
    set_level(Level.parse(config.level))
    set_formatter(FORMATTERS[config.format])
    if config.colors is not None:
        set_colors(config.colors)


def _log(level: Level, msg: str, fields: dict[str, Any]) -> None:
    # stacklevel 3 points the location at the helper's caller.
    _root.log(level, msg, extra={"fields": fields}, stacklevel=3)


def debug(msg: str, **fields: Any) -> None:
    _log(Level.DEBUG, msg, fields)


def info(msg: str, **fields: Any) -> None:
    _log(Level.INFO, msg, fields)


def warn(msg: str, **fields: Any) -> None:
    _log(Level.WARN, msg, fields)


def error(msg: str, **fields: Any) -> None:
    _log(Level.ERROR, msg, fields)
