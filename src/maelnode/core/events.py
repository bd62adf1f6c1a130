"""Events consumed by the node's single event loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from maelnode.protocol import Envelope


@dataclass(frozen=True)
class Inbound:
    """One decoded input line."""

    envelope: Envelope[Any]


@dataclass(frozen=True)
class Tick:
    """A timer registered under ``key`` fired."""

    key: str


@dataclass(frozen=True)
class InputClosed:
    """The input stream reached end of file."""


@dataclass(frozen=True)
class Stop:
    """Shutdown was requested from outside (signal, embedding code)."""


@dataclass(frozen=True)
class ProducerFailed:
    """A producer task died; the consumer turns this into a fatal error."""

    task: str
    exception: BaseException


type NodeEvent = Inbound | Tick | InputClosed | Stop | ProducerFailed
