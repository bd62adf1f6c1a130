"""Echo node: answers every ``echo`` with the same payload."""

from __future__ import annotations

from typing import Any, assert_never

from maelnode.core.runtime import NodeContext, Program
from maelnode.core.state import NodeState
from maelnode.protocol import Codec, Envelope, Init, InitOk, body


@body("echo")
class Echo:
    msg_id: int
    echo: str


@body("echo_ok")
class EchoOk:
    msg_id: int
    in_reply_to: int
    echo: str


type EchoBody = Init | InitOk | Echo | EchoOk

codec = Codec(Init, InitOk, Echo, EchoOk)


def receive(ctx: NodeContext, state: NodeState, envelope: Envelope[Any]) -> list[Envelope[Any]]:
    msg: EchoBody = envelope.body
    match msg:
        case Init(msg_id=msg_id, node_id=node_id, node_ids=node_ids):
            state.initialize(node_id, node_ids)
            return [envelope.reply(InitOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]
        case Echo(msg_id=msg_id, echo=echo):
            return [envelope.reply(EchoOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, echo=echo))]
        case InitOk() | EchoOk():
            ctx.log.debug("No reply for %s", type(msg).__name__)
            return []
        case _:
            assert_never(msg)


def program() -> Program[NodeState]:
    return Program(name="echo", codec=codec, state=NodeState, on_receive=receive)
