"""Node programs that can be hosted by the runtime, keyed by CLI name."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from maelnode.core.runtime import Program
from maelnode.workloads import broadcast, echo, g_counter, kafka, unique_ids

PROGRAMS: dict[str, Callable[[], Program[Any]]] = {
    "broadcast": broadcast.program,
    "echo": echo.program,
    "unique-ids": unique_ids.program,
    "g-counter": g_counter.program,
    "kafka": kafka.program,
}

__all__ = ["PROGRAMS"]
