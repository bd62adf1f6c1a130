"""Error taxonomy for node programs.

Every failure the runtime cannot recover from is a ``NodeError``. They all
propagate out of ``Node.run()`` and the command line turns them into a
non-zero exit status.
"""

from __future__ import annotations


class NodeError(Exception):
    """Base class for fatal node failures."""


class DecodeError(NodeError):
    """An input line is not a valid envelope for the running program."""


class EncodeError(NodeError):
    """An outbound envelope could not be serialized."""


class InputError(NodeError):
    """The input stream could not be opened or read."""


class OutputError(NodeError):
    """Writing to the output sink failed."""


class BackgroundTaskError(NodeError):
    """A producer task (input reader or timer) died unexpectedly."""

    def __init__(self, task: str, cause: BaseException) -> None:
        super().__init__(f"background task {task!r} failed: {cause!r}")
        self.task = task


class ConfigError(NodeError):
    """Configuration file or command line values are invalid."""
