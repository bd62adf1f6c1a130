"""Test utilities for maelnode tests."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from maelnode import Envelope, NodeConfig
from maelnode.core.runtime import Node, Program


class StubContext:
    """Synchronous stand-in for ``NodeContext`` when calling handlers directly.

    Scheduled ticks are only recorded; tests fire them by calling the
    program's tick handler themselves.
    """

    def __init__(self, config: NodeConfig | None = None) -> None:
        self.config = config or NodeConfig()
        self.log = logging.getLogger("maelnode.test")
        self.ticks: dict[str, float] = {}
        self.schedule_calls = 0

    def schedule_tick(self, key: str, interval: float) -> None:
        self.schedule_calls += 1
        self.ticks[key] = interval

    def is_scheduled(self, key: str) -> bool:
        return key in self.ticks


def envelope(src: str, dest: str, body: Any) -> Envelope[Any]:
    return Envelope(src=src, dest=dest, body=body)


def line(src: str, dest: str, **body: Any) -> bytes:
    """One raw input line, e.g. ``line("c1", "n1", type="read", msg_id=1)``."""
    return (json.dumps({"src": src, "dest": dest, "body": body}) + "\n").encode()


def reader_for(lines: Iterable[bytes], *, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for raw in lines:
        reader.feed_data(raw)
    if eof:
        reader.feed_eof()
    return reader


def make_node[S](
    program: Program[S],
    lines: Iterable[bytes] = (),
    *,
    eof: bool = True,
    config: NodeConfig | None = None,
) -> tuple[Node[S], io.StringIO]:
    output = io.StringIO()
    node = Node(program, reader=reader_for(lines, eof=eof), output=output, config=config)
    return node, output


def output_messages(output: io.StringIO) -> list[dict[str, Any]]:
    return [json.loads(raw) for raw in output.getvalue().splitlines()]


async def retry_until(
    condition: Callable[[], bool | Awaitable[bool]],
    *,
    timeout: float = 5.0,
    interval: float = 0.01,
    message: str = "Condition not met within timeout",
) -> None:
    """Wait until a condition is met, with timeout.

    Raises:
        TimeoutError: If condition is not met within timeout
    """
    start = time.time()
    while time.time() - start < timeout:
        result = condition()

        if asyncio.iscoroutine(result):
            result = await result

        if result:
            return

        await asyncio.sleep(interval)
    raise TimeoutError(message)
