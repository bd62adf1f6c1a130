"""Unique id generator.

Ids are ``<node_id>_<msg_id>`` where ``msg_id`` is the id of the reply that
carries it. Node ids are unique within a cluster and a node never reuses a
message id, so no coordination is needed.
"""

from __future__ import annotations

from typing import Any, assert_never

from maelnode.core.runtime import NodeContext, Program
from maelnode.core.state import NodeState
from maelnode.protocol import Codec, Envelope, Init, InitOk, body


@body("generate")
class Generate:
    msg_id: int


@body("generate_ok")
class GenerateOk:
    msg_id: int
    in_reply_to: int
    id: str


type UniqueIdsBody = Init | InitOk | Generate | GenerateOk

codec = Codec(Init, InitOk, Generate, GenerateOk)


def receive(ctx: NodeContext, state: NodeState, envelope: Envelope[Any]) -> list[Envelope[Any]]:
    msg: UniqueIdsBody = envelope.body
    match msg:
        case Init(msg_id=msg_id, node_id=node_id, node_ids=node_ids):
            state.initialize(node_id, node_ids)
            return [envelope.reply(InitOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]
        case Generate(msg_id=msg_id):
            reply_id = state.next_msg_id()
            return [envelope.reply(GenerateOk(msg_id=reply_id, in_reply_to=msg_id, id=f"{state.node_id}_{reply_id}"))]
        case InitOk() | GenerateOk():
            return []
        case _:
            assert_never(msg)


def program() -> Program[NodeState]:
    return Program(name="unique-ids", codec=codec, state=NodeState, on_receive=receive)
