"""Gossip broadcast node with anti-entropy convergence.

Clients ``broadcast`` integer values to any node; every node eventually
``read``s the union of all of them. Dissemination is periodic: each gossip
round sends every neighbour the values it has not yet acknowledged, so a
lost ``gossip`` or ``gossip_ok`` is simply retried on the next round, and
values a neighbour already confirmed are never sent to it again.

Acknowledgement works by echoing: ``gossip_ok`` carries back the exact set
of values that was received, and the sender folds it into
``seen_by_neighbor[src]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, assert_never

from maelnode.core.runtime import NodeContext, Program
from maelnode.core.state import NodeState
from maelnode.protocol import Codec, Envelope, Init, InitOk, body


GOSSIP_TICK = "gossip"


# =============================================================================
# Bodies
# =============================================================================


@body("broadcast")
class Broadcast:
    msg_id: int
    message: int


@body("broadcast_ok")
class BroadcastOk:
    msg_id: int
    in_reply_to: int


@body("read")
class Read:
    msg_id: int


@body("read_ok")
class ReadOk:
    msg_id: int
    in_reply_to: int
    messages: frozenset[int]


@body("topology")
class Topology:
    msg_id: int
    topology: dict[str, tuple[str, ...]]


@body("topology_ok")
class TopologyOk:
    msg_id: int
    in_reply_to: int


@body("gossip")
class Gossip:
    msg_id: int
    messages: frozenset[int]


@body("gossip_ok")
class GossipOk:
    msg_id: int
    in_reply_to: int
    messages: frozenset[int]


type BroadcastBody = (
    Init | InitOk | Broadcast | BroadcastOk | Read | ReadOk | Topology | TopologyOk | Gossip | GossipOk
)

codec = Codec(Init, InitOk, Broadcast, BroadcastOk, Read, ReadOk, Topology, TopologyOk, Gossip, GossipOk)


# =============================================================================
# State
# =============================================================================


@dataclass
class BroadcastState(NodeState):
    """Values known locally plus what each neighbour is known to hold.

    ``known_values`` only grows. A missing ``seen_by_neighbor`` entry means
    nothing is known about that neighbour yet.
    """

    known_values: set[int] = field(default_factory=set)
    neighbors: tuple[str, ...] = ()
    seen_by_neighbor: dict[str, set[int]] = field(default_factory=dict)

    def learn(self, values: frozenset[int] | set[int]) -> None:
        self.known_values.update(values)

    def acknowledge(self, neighbor: str, values: frozenset[int]) -> None:
        self.seen_by_neighbor.setdefault(neighbor, set()).update(values)

    def delta_for(self, neighbor: str) -> frozenset[int]:
        """Values not yet acknowledged by ``neighbor``."""
        seen = self.seen_by_neighbor.get(neighbor)
        if seen is None:
            return frozenset(self.known_values)
        return frozenset(self.known_values - seen)


# =============================================================================
# Handlers
# =============================================================================


def receive(ctx: NodeContext, state: BroadcastState, envelope: Envelope[Any]) -> list[Envelope[Any]]:
    msg: BroadcastBody = envelope.body
    match msg:
        case Init(msg_id=msg_id, node_id=node_id, node_ids=node_ids):
            state.initialize(node_id, node_ids)
            if not ctx.is_scheduled(GOSSIP_TICK):
                ctx.schedule_tick(GOSSIP_TICK, ctx.config.gossip.interval)
            ctx.log.info("Initialized as %s (%d nodes in cluster)", node_id, len(node_ids))
            return [envelope.reply(InitOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case Broadcast(msg_id=msg_id, message=message):
            state.learn({message})
            return [envelope.reply(BroadcastOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case Read(msg_id=msg_id):
            snapshot = frozenset(state.known_values)
            return [envelope.reply(ReadOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, messages=snapshot))]

        case Topology(msg_id=msg_id, topology=topology):
            neighbors = topology.get(state.node_id)
            if neighbors is not None:
                state.neighbors = neighbors
                ctx.log.info("Neighbors: %s", ", ".join(neighbors) or "(none)")
            else:
                ctx.log.warning("Topology has no entry for %r; keeping current neighbors", state.node_id)
            return [envelope.reply(TopologyOk(msg_id=state.next_msg_id(), in_reply_to=msg_id))]

        case Gossip(msg_id=msg_id, messages=messages):
            state.learn(messages)
            return [envelope.reply(GossipOk(msg_id=state.next_msg_id(), in_reply_to=msg_id, messages=messages))]

        case GossipOk(messages=messages):
            state.acknowledge(envelope.src, messages)
            return []

        case InitOk() | BroadcastOk() | ReadOk() | TopologyOk():
            return []

        case _:
            assert_never(msg)


def gossip_round(ctx: NodeContext, state: BroadcastState, key: str) -> list[Envelope[Any]]:
    """One ``gossip`` per neighbour whose delta is non-empty, in neighbour order."""
    if key != GOSSIP_TICK:
        ctx.log.warning("Unknown timer %r", key)
        return []

    out: list[Envelope[Any]] = []
    for neighbor in state.neighbors:
        delta = state.delta_for(neighbor)
        if not delta:
            continue
        out.append(
            Envelope(
                src=state.node_id,
                dest=neighbor,
                body=Gossip(msg_id=state.next_msg_id(), messages=delta),
            )
        )
    if out:
        ctx.log.debug("Gossip round: %d of %d neighbors behind", len(out), len(state.neighbors))
    return out


def program() -> Program[BroadcastState]:
    return Program(
        name="broadcast",
        codec=codec,
        state=BroadcastState,
        on_receive=receive,
        on_tick=gossip_round,
    )
