from __future__ import annotations

import asyncio


class Mailbox[M]:
    """Unbounded FIFO merging any number of producers into one consumer.

    ``put`` never blocks or drops, so it is safe to call from task done
    callbacks as well as from coroutines.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[M] = asyncio.Queue()

    def put(self, msg: M) -> None:
        self._queue.put_nowait(msg)

    async def get(self) -> M:
        return await self._queue.get()

    def size(self) -> int:
        return self._queue.qsize()
