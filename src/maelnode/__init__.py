"""Cluster node programs speaking line-delimited JSON on stdin/stdout.

Each program (broadcast, echo, unique-ids, g-counter, kafka) is a ``Program``
hosted by the same asyncio runtime: an input reader and periodic timers feed
a single consumer that owns all node state and the output stream.
"""

from maelnode.config import (
    GossipConfig,
    InputConfig,
    LoggingConfig,
    NodeConfig,
    discover_config,
    load_config,
)
from maelnode.core.runtime import Node, NodeContext, OutputWriter, Program
from maelnode.core.state import NodeState
from maelnode.errors import (
    BackgroundTaskError,
    ConfigError,
    DecodeError,
    EncodeError,
    InputError,
    NodeError,
    OutputError,
)
from maelnode.protocol import Codec, Envelope, Init, InitOk, body, body_type

__version__ = "0.1.0"

__all__ = [
    "BackgroundTaskError",
    "Codec",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "Envelope",
    "GossipConfig",
    "Init",
    "InitOk",
    "InputConfig",
    "InputError",
    "LoggingConfig",
    "Node",
    "NodeConfig",
    "NodeContext",
    "NodeError",
    "NodeState",
    "OutputError",
    "OutputWriter",
    "Program",
    "body",
    "body_type",
    "discover_config",
    "load_config",
]
