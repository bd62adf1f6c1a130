"""Event loop and output writer shared by every node program.

``Node`` merges two kinds of producers into one ``Mailbox``:

- the input reader task, which decodes each line into an ``Inbound`` event
  and finally enqueues ``InputClosed``;
- the ``Scheduler`` timers, which enqueue ``Tick`` events.

A single consumer takes events one at a time, hands them to the program and
writes whatever envelopes come back. Program state is only ever touched by
that consumer, and only the consumer writes to the output stream, so
neither needs a lock.

Programs are plain data: a ``Program`` bundles a codec, a state factory and
the callbacks the consumer invokes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, BinaryIO, TextIO, assert_never

from maelnode.config import NodeConfig
from maelnode.core.events import Inbound, InputClosed, NodeEvent, ProducerFailed, Stop, Tick
from maelnode.core.mailbox import Mailbox
from maelnode.core.scheduler import Scheduler
from maelnode.errors import BackgroundTaskError, DecodeError, InputError, NodeError, OutputError
from maelnode.logger import get_logger
from maelnode.protocol import Codec, Envelope

log = get_logger("runtime")

type Replies = Iterable[Envelope[Any]]


@dataclass(frozen=True, kw_only=True)
class Program[S]:
    """Everything the runtime needs to host one kind of node.

    ``on_receive`` handles one decoded envelope and returns the envelopes to
    send. ``on_tick`` handles timers the program registered through
    ``NodeContext.schedule_tick``.
    """

    name: str
    codec: Codec
    state: Callable[[], S]
    on_receive: Callable[[NodeContext, S, Envelope[Any]], Replies]
    on_tick: Callable[[NodeContext, S, str], Replies] | None = None


class NodeContext:
    """Handle given to program callbacks."""

    def __init__(self, node: Node[Any]) -> None:
        self._node = node

    @property
    def config(self) -> NodeConfig:
        return self._node.config

    @property
    def log(self) -> logging.Logger:
        return self._node.logger

    def schedule_tick(self, key: str, interval: float) -> None:
        self._node.scheduler.schedule_tick(key, interval)

    def is_scheduled(self, key: str) -> bool:
        return self._node.scheduler.is_scheduled(key)


class OutputWriter:
    """Sole writer of the output stream: one encoded envelope per line."""

    def __init__(self, codec: Codec, stream: TextIO) -> None:
        self._codec = codec
        self._stream = stream
        self.lines_written = 0

    def write(self, envelope: Envelope[Any]) -> None:
        line = self._codec.encode(envelope)
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            raise OutputError(f"cannot write to output: {exc}") from exc
        self.lines_written += 1


class Node[S]:
    def __init__(
        self,
        program: Program[S],
        *,
        reader: asyncio.StreamReader,
        output: TextIO,
        config: NodeConfig | None = None,
    ) -> None:
        self.program = program
        self.config = config or NodeConfig()
        self.state: S = program.state()
        self.logger = get_logger(program.name)
        self.mailbox: Mailbox[NodeEvent] = Mailbox()
        self.scheduler = Scheduler(self.mailbox.put)
        self.writer = OutputWriter(program.codec, output)
        self._reader = reader
        self.context = NodeContext(self)

    def stop(self) -> None:
        """Ask the event loop to finish after the events already queued."""
        self.mailbox.put(Stop())

    async def run(self) -> None:
        """Serve until end of input or ``stop()``.

        Raises
        ------
        NodeError
            On any decode, encode, write or producer failure.
        """
        log.info("Starting %s node", self.program.name)
        reader_task = asyncio.get_running_loop().create_task(self._read_input(), name="input-reader")
        reader_task.add_done_callback(self._on_reader_done)
        try:
            await self._consume()
        finally:
            await self.scheduler.shutdown()
            reader_task.cancel()
            await asyncio.gather(reader_task, return_exceptions=True)
            log.info(
                "Stopped %s node (%d lines written, %d events left unhandled)",
                self.program.name,
                self.writer.lines_written,
                self.mailbox.size(),
            )

    async def _read_input(self) -> None:
        codec = self.program.codec
        while True:
            try:
                line = await self._reader.readline()
            except ValueError as exc:
                raise DecodeError(f"input line too long: {exc}") from exc
            if not line:
                self.mailbox.put(InputClosed())
                return
            self.mailbox.put(Inbound(codec.decode(line)))

    def _on_reader_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.mailbox.put(ProducerFailed(task=task.get_name(), exception=exc))

    async def _consume(self) -> None:
        program = self.program
        while True:
            event = await self.mailbox.get()
            match event:
                case Inbound(envelope=envelope):
                    self.logger.debug("<- %s %s", envelope.src, envelope.body)
                    replies = program.on_receive(self.context, self.state, envelope)
                case Tick(key=key):
                    if program.on_tick is None:
                        self.logger.warning("Tick %r ignored: program has no tick handler", key)
                        continue
                    replies = program.on_tick(self.context, self.state, key)
                case InputClosed():
                    log.info("Input closed")
                    return
                case Stop():
                    log.info("Stop requested")
                    return
                case ProducerFailed(task=task, exception=exc):
                    if isinstance(exc, NodeError):
                        raise exc
                    raise BackgroundTaskError(task, exc) from exc
                case _:
                    assert_never(event)

            for reply in replies:
                self.logger.debug("-> %s %s", reply.dest, reply.body)
                self.writer.write(reply)


_FILE_CHUNK = 64 * 1024

# Strong references to running file copy tasks.
_file_copies: set[asyncio.Task[None]] = set()


async def _copy_file(stream: BinaryIO, reader: asyncio.StreamReader) -> None:
    try:
        while chunk := await asyncio.to_thread(stream.read1, _FILE_CHUNK):
            reader.feed_data(chunk)
    except OSError as exc:
        reader.set_exception(InputError(f"cannot read input: {exc}"))
        return
    reader.feed_eof()


async def open_stdin(limit: int, stream: BinaryIO | None = None) -> asyncio.StreamReader:
    """Attach an ``asyncio.StreamReader`` to the process's standard input.

    Pipes, sockets and terminals are read through the event loop. A regular
    file (``maelnode echo < session.jsonl``) cannot be, so a background task
    copies it into the reader from a worker thread instead.

    Raises
    ------
    InputError
        If the input cannot be inspected or attached.
    """
    stream = stream if stream is not None else sys.stdin.buffer
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    try:
        mode = os.fstat(stream.fileno()).st_mode
    except (OSError, ValueError) as exc:
        raise InputError(f"cannot inspect input: {exc}") from exc

    if stat.S_ISFIFO(mode) or stat.S_ISSOCK(mode) or stat.S_ISCHR(mode):
        protocol = asyncio.StreamReaderProtocol(reader)
        try:
            await loop.connect_read_pipe(lambda: protocol, stream)
        except (OSError, ValueError) as exc:
            raise InputError(f"cannot attach input: {exc}") from exc
        return reader

    log.debug("Input is a regular file; copying it from a worker thread")
    task = loop.create_task(_copy_file(stream, reader), name="input-file")
    _file_copies.add(task)
    task.add_done_callback(_file_copies.discard)
    return reader
