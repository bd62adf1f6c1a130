"""Single-node replicated log with committed consumer offsets.

Each key names an append-only log; offsets are 0-based positions in it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, assert_never

from maelnode.core.runtime import NodeContext, Program
from maelnode.core.state import NodeState
from maelnode.protocol import Codec, Envelope, Init, InitOk, body


@body("send")
class Send:
    msg_id: int
    key: str
    msg: int


@body("send_ok")
class SendOk:
    msg_id: int
    in_reply_to: int
    offset: int


@body("poll")
class Poll:
    msg_id: int
    offsets: dict[str, int]


@body("poll_ok")
class PollOk:
    msg_id: int
    in_reply_to: int
    msgs: dict[str, tuple[tuple[int, int], ...]]


@body("commit_offsets")
class CommitOffsets:
    msg_id: int
    offsets: dict[str, int]


@body("commit_offsets_ok")
class CommitOffsetsOk:
    msg_id: int
    in_reply_to: int


@body("list_committed_offsets")
class ListCommittedOffsets:
    msg_id: int
    keys: tuple[str, ...]


@body("list_committed_offsets_ok")
class ListCommittedOffsetsOk:
    msg_id: int
    in_reply_to: int
    offsets: dict[str, int]


type KafkaBody = (
    Init
    | InitOk
    | Send
    | SendOk
    | Poll
    | PollOk
    | CommitOffsets
    | CommitOffsetsOk
    | ListCommittedOffsets
    | ListCommittedOffsetsOk
)

codec = Codec(
    Init,
    InitOk,
    Send,
    SendOk,
    Poll,
    PollOk,
    CommitOffsets,
    CommitOffsetsOk,
    ListCommittedOffsets,
    ListCommittedOffsetsOk,
)


@dataclass
class LogState(NodeState):
    logs: dict[str, list[int]] = field(default_factory=dict)
    committed: dict[str, int] = field(default_factory=dict)

    def append(self, key: str, value: int) -> int:
        log = self.logs.setdefault(key, [])
        log.append(value)
        return len(log) - 1

    def read_from(self, offsets: dict[str, int]) -> dict[str, tuple[tuple[int, int], ...]]:
        """Entries at or after each requested offset, for keys that exist."""
        return {
            key: tuple((offset, value) for offset, value in enumerate(self.logs[key]) if offset >= start)
            for key, start in offsets.items()
            if key in self.logs
        }

    def commit(self, offsets: dict[str, int]) -> None:
        self.committed.update(offsets)

    def committed_for(self, keys: tuple[str, ...]) -> dict[str, int]:
        return {key: self.committed[key] for key in keys if key in self.committed}


def receive(ctx: NodeContext, state: LogState, envelope: Envelope[Any]) -> list[Envelope[Any]]:
    msg: KafkaBody = envelope.body
    match msg:
        case Init(msg_id=msg_id, node_id=node_id, node_ids=node_ids):
            state.initialize(node_id, node_ids)
            return [envelope.reply(InitOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case Send(msg_id=msg_id, key=key, msg=value):
            offset = state.append(key, value)
            return [envelope.reply(SendOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, offset=offset))]

        case Poll(msg_id=msg_id, offsets=offsets):
            msgs = state.read_from(offsets)
            return [envelope.reply(PollOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, msgs=msgs))]

        case CommitOffsets(msg_id=msg_id, offsets=offsets):
            state.commit(offsets)
            return [envelope.reply(CommitOffsetsOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case ListCommittedOffsets(msg_id=msg_id, keys=keys):
            offsets = state.committed_for(keys)
            return [
                envelope.reply(ListCommittedOffsetsOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, offsets=offsets))
            ]

        case InitOk() | SendOk() | PollOk() | CommitOffsetsOk() | ListCommittedOffsetsOk():
            return []

        case _:
            assert_never(msg)


def program() -> Program[LogState]:
    return Program(name="kafka", codec=codec, state=LogState, on_receive=receive)
