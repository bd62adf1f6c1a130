"""Grow-only counter replicated by state sync.

Every node keeps one counter per cluster member and only ever increments its
own. After each ``add`` it pushes its whole counter map to every other
member; receivers merge key by key with ``max``, which is commutative,
associative and idempotent, so duplicated or reordered syncs are harmless.
The counter value is the sum over all members.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, assert_never

from maelnode.core.runtime import NodeContext, Program
from maelnode.core.state import NodeState
from maelnode.protocol import Codec, Envelope, Init, InitOk, body


@body("add")
class Add:
    msg_id: int
    delta: int


@body("add_ok")
class AddOk:
    msg_id: int
    in_reply_to: int


@body("read")
class Read:
    msg_id: int


@body("read_ok")
class ReadOk:
    msg_id: int
    in_reply_to: int
    value: int


@body("sync")
class Sync:
    msg_id: int
    counters: dict[str, int]


type GCounterBody = Init | InitOk | Add | AddOk | Read | ReadOk | Sync

codec = Codec(Init, InitOk, Add, AddOk, Read, ReadOk, Sync)


@dataclass
class CounterState(NodeState):
    counters: dict[str, int] = field(default_factory=dict)

    def initialize(self, node_id: str, node_ids: tuple[str, ...]) -> None:
        super().initialize(node_id, node_ids)
        self.counters = {member: 0 for member in node_ids}

    def add(self, delta: int) -> None:
        if self.node_id in self.counters:
            self.counters[self.node_id] += delta

    def merge(self, remote: dict[str, int]) -> None:
        # Keys outside the membership announced by init are ignored.
        for member, value in remote.items():
            if member in self.counters and value > self.counters[member]:
                self.counters[member] = value

    @property
    def value(self) -> int:
        return sum(self.counters.values())


def receive(ctx: NodeContext, state: CounterState, envelope: Envelope[Any]) -> list[Envelope[Any]]:
    msg: GCounterBody = envelope.body
    match msg:
        case Init(msg_id=msg_id, node_id=node_id, node_ids=node_ids):
            state.initialize(node_id, node_ids)
            return [envelope.reply(InitOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case Add(msg_id=msg_id, delta=delta):
            state.add(delta)
            sync_id = state.next_msg_id()
            snapshot = dict(state.counters)
            out: list[Envelope[Any]] = [
                Envelope(src=state.node_id, dest=member, body=Sync(msg_id=sync_id, counters=snapshot))
                for member in state.node_ids
                if member != state.node_id
            ]
            out.append(envelope.reply(AddOk(msg_id=state.next_msg_id(), in_reply_to=msg_id)))
            return out

        case Read(msg_id=msg_id):
            return [envelope.reply(ReadOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, value=state.value))]

        case Sync(counters=counters):
            state.merge(counters)
            return []

        case InitOk() | AddOk() | ReadOk():
            return []

        case _:
            assert_never(msg)


def program() -> Program[CounterState]:
    return Program(name="g-counter", codec=codec, state=CounterState, on_receive=receive)
