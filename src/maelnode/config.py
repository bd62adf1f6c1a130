"""TOML-based configuration for node programs.

Provides ``load_config`` / ``discover_config`` for loading ``maelnode.toml``
and a small hierarchy of frozen dataclasses for gossip timing, input limits
and logging.

Example file::

    [gossip]
    interval = 0.15

    [input]
    line_limit = 16777216

    [logging]
    level = "debug"
    format = "compact"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Literal

from maelnode.errors import ConfigError
from maelnode.logger import Level


__all__ = [
    "GossipConfig",
    "InputConfig",
    "LogFormat",
    "LoggingConfig",
    "NodeConfig",
    "CONFIG_FILENAME",
    "discover_config",
    "load_config",
]


CONFIG_FILENAME = "maelnode.toml"

type LogFormat = Literal["verbose", "compact", "minimal"]


@dataclass(frozen=True)
class GossipConfig:
    """Anti-entropy timing.

    Parameters
    ----------
    interval : float
        Seconds between two gossip rounds. Only a tuning knob: any positive
        value converges, smaller values converge faster and send more.

    Examples
    --------
    >>> GossipConfig(interval=0.5)
    GossipConfig(interval=0.5)
    """

    interval: float = 0.15

    def __post_init__(self) -> None:
        if isinstance(self.interval, bool) or not isinstance(self.interval, int | float):
            msg = f"gossip.interval must be a number, got {self.interval!r}"
            raise ConfigError(msg)
        if self.interval <= 0:
            msg = f"gossip.interval must be positive, got {self.interval!r}"
            raise ConfigError(msg)


@dataclass(frozen=True)
class InputConfig:
    """Input stream limits.

    Parameters
    ----------
    line_limit : int
        Longest accepted input line in bytes. Longer lines are fatal.
    """

    line_limit: int = 16 * 1024 * 1024

    def __post_init__(self) -> None:
        if isinstance(self.line_limit, bool) or not isinstance(self.line_limit, int) or self.line_limit <= 0:
            msg = f"input.line_limit must be a positive integer, got {self.line_limit!r}"
            raise ConfigError(msg)


@dataclass(frozen=True)
class LoggingConfig:
    """Diagnostic output settings (always written to stderr).

    Parameters
    ----------
    level : str
        ``"debug"``, ``"info"``, ``"warn"``, ``"error"`` or ``"off"``.
    format : LogFormat
        ``"verbose"``, ``"compact"`` or ``"minimal"``.
    colors : bool | None
        Force ANSI colours on or off. ``None`` detects a TTY.

    Examples
    --------
    >>> LoggingConfig(level="debug", format="compact")
    LoggingConfig(level='debug', format='compact', colors=None)
    """

    level: str = "info"
    format: LogFormat = "verbose"
    colors: bool | None = None

    def __post_init__(self) -> None:
        try:
            Level.parse(self.level)
        except ValueError as exc:
            raise ConfigError(str(exc)) from None
        if self.format not in ("verbose", "compact", "minimal"):
            msg = f"unknown log format {self.format!r}"
            raise ConfigError(msg)


@dataclass(frozen=True)
class NodeConfig:
    """Root configuration object passed to the runtime."""

    gossip: GossipConfig = field(default_factory=GossipConfig)
    input: InputConfig = field(default_factory=InputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def with_overrides(
        self,
        *,
        gossip_interval: float | None = None,
        log_level: str | None = None,
    ) -> NodeConfig:
        """Return a copy with command line overrides applied."""
        config = self
        if gossip_interval is not None:
            config = replace(config, gossip=replace(config.gossip, interval=gossip_interval))
        if log_level is not None:
            config = replace(config, logging=replace(config.logging, level=log_level))
        return config


def _section[T](cls: type[T], raw: dict[str, Any], name: str) -> T:
    value = raw.get(name, {})
    if not isinstance(value, dict):
        msg = f"[{name}] must be a table"
        raise ConfigError(msg)
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = set(value) - known
    if unknown:
        msg = f"unknown key(s) in [{name}]: {', '.join(sorted(unknown))}"
        raise ConfigError(msg)
    return cls(**value)


def discover_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``maelnode.toml``.

    Returns
    -------
    Path | None
        Path to the discovered config file, or ``None`` if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None) -> NodeConfig:
    """Load a ``NodeConfig`` from a TOML file.

    If *path* is ``None``, auto-discovers ``maelnode.toml`` by walking up from
    the current working directory. Returns the default config if no file is
    found.

    Raises
    ------
    FileNotFoundError
        If an explicit *path* is given but does not exist.
    ConfigError
        If the file is not valid TOML or holds invalid values.
    """
    if path is None:
        discovered = discover_config()
        if discovered is None:
            return NodeConfig()
        path = discovered

    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"{path}: {exc}"
            raise ConfigError(msg) from exc

    try:
        return NodeConfig(
            gossip=_section(GossipConfig, raw, "gossip"),
            input=_section(InputConfig, raw, "input"),
            logging=_section(LoggingConfig, raw, "logging"),
        )
    except TypeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
