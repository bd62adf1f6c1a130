from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NodeState:
    """Identity and outbound message-id counter every program carries.

    ``node_id`` is empty until the ``init`` message arrives. Message ids start
    at 1: the counter is incremented before each use and never reused.
    """

    node_id: str = ""
    node_ids: tuple[str, ...] = ()
    msg_id: int = 0

    def initialize(self, node_id: str, node_ids: tuple[str, ...]) -> None:
        self.node_id = node_id
        self.node_ids = node_ids

    def next_msg_id(self) -> int:
        self.msg_id += 1
        return self.msg_id
