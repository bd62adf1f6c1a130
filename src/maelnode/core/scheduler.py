"""Periodic timers feeding the node mailbox.

A ``Scheduler`` owns one asyncio task per registered key. Each task sleeps
for its interval and delivers a ``Tick(key)``; it never touches node state.
Timers stop only when cancelled, either individually with ``cancel`` or all
at once by ``shutdown``, which also waits for the tasks to finish. A timer
task that dies with an exception delivers ``ProducerFailed`` so the consumer
can fail the whole process instead of silently losing its ticks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from maelnode.core.events import NodeEvent, ProducerFailed, Tick
from maelnode.logger import get_logger

log = get_logger("scheduler")


class Scheduler:
    def __init__(self, deliver: Callable[[NodeEvent], None]) -> None:
        self._deliver = deliver
        self._running: dict[str, asyncio.Task[None]] = {}

    def is_scheduled(self, key: str) -> bool:
        task = self._running.get(key)
        return task is not None and not task.done()

    def schedule_tick(self, key: str, interval: float) -> None:
        """Deliver ``Tick(key)`` every ``interval`` seconds.

        Registering an existing key replaces its timer.
        """
        if interval <= 0:
            msg = f"tick interval must be positive, got {interval!r}"
            raise ValueError(msg)

        self.cancel(key)

        async def tick() -> None:
            while True:
                await asyncio.sleep(interval)
                self._deliver(Tick(key))

        task = asyncio.get_running_loop().create_task(tick(), name=f"tick:{key}")
        task.add_done_callback(lambda t: self._on_done(key, t))
        self._running[key] = task
        log.debug("Scheduled tick %r every %.3fs", key, interval)

    def cancel(self, key: str) -> None:
        task = self._running.pop(key, None)
        if task is not None:
            task.cancel()

    async def shutdown(self) -> None:
        """Cancel every timer and wait for all of them to exit."""
        tasks = list(self._running.values())
        self._running.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _on_done(self, key: str, task: asyncio.Task[None]) -> None:
        if self._running.get(key) is task:
            del self._running[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Timer %r died: %r", key, exc)
            self._deliver(ProducerFailed(task=f"tick:{key}", exception=exc))
