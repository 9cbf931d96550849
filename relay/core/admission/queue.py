"""
Pending ticket queues.

Two fairness policies behind one small interface:
    - FifoQueue: global arrival order
    - RoundRobinQueue: one FIFO per chat, chats served in rotation

Neither evicts; capacity is enforced by the gate before push().
"""
from collections import OrderedDict, deque
from typing import Deque, Dict, Hashable, Iterator, List, Optional

from .types import AdmissionTicket


class FifoQueue:
    """Tickets served strictly in arrival order."""

    policy = "fifo"

    def __init__(self):
        self._items: Deque[AdmissionTicket] = deque()

    def push(self, ticket: AdmissionTicket) -> int:
        """Append a ticket, return its 1-based position."""
        self._items.append(ticket)
        return len(self._items)

    def pop(self) -> Optional[AdmissionTicket]:
        return self._items.popleft() if self._items else None

    def drain(self) -> List[AdmissionTicket]:
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[AdmissionTicket]:
        return iter(self._items)

    def snapshot(self) -> List[tuple]:
        return [t.command.key for t in self._items]


class RoundRobinQueue:
    """One FIFO per chat; each pop takes the head of the next chat in turn."""

    policy = "round_robin"

    def __init__(self):
        self._chats: "OrderedDict[Hashable, Deque[AdmissionTicket]]" = OrderedDict()
        self._size = 0

    def push(self, ticket: AdmissionTicket) -> int:
        chat = ticket.command.chat_id
        lane = self._chats.get(chat)
        if lane is None:
            lane = self._chats[chat] = deque()
        lane.append(ticket)
        self._size += 1
        return self._position(ticket)

    def pop(self) -> Optional[AdmissionTicket]:
        if not self._chats:
            return None
        chat, lane = next(iter(self._chats.items()))
        ticket = lane.popleft()
        self._size -= 1
        # Rotate: served chat goes to the back, or leaves when empty
        del self._chats[chat]
        if lane:
            self._chats[chat] = lane
        return ticket

    def drain(self) -> List[AdmissionTicket]:
        items = list(self)
        self._chats.clear()
        self._size = 0
        return items

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[AdmissionTicket]:
        """Tickets in the order pop() would return them."""
        lanes = [deque(lane) for lane in self._chats.values()]
        while lanes:
            next_round = []
            for lane in lanes:
                yield lane.popleft()
                if lane:
                    next_round.append(lane)
            lanes = next_round

    def _position(self, ticket: AdmissionTicket) -> int:
        """Service position of a ticket just appended to its chat's lane.

        Round k serves the k-th ticket of every lane that long, in lane
        order. Walks the chats, not the tickets.
        """
        chat = ticket.command.chat_id
        k = len(self._chats[chat])
        position = k
        before = True
        for other, lane in self._chats.items():
            if other == chat:
                before = False
                continue
            position += min(len(lane), k if before else k - 1)
        return position

    def snapshot(self) -> List[tuple]:
        return [t.command.key for t in self]


def make_queue(policy: str):
    """Build the pending queue for a fairness policy name."""
    queues: Dict[str, type] = {
        FifoQueue.policy: FifoQueue,
        RoundRobinQueue.policy: RoundRobinQueue,
    }
    try:
        return queues[policy]()
    except KeyError:
        raise ValueError(f"Unknown fairness policy: {policy!r}") from None
