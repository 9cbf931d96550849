"""Tests for pending ticket queues."""
import pytest

from relay.core.admission import AdmissionTicket, FifoQueue, RoundRobinQueue, make_queue


@pytest.fixture
def ticket(command):
    def make(chat_id, sequence):
        return AdmissionTicket(command=command(chat_id, sequence), enqueued_at=0.0)
    return make


class TestFifoQueue:

    def test_positions_and_order(self, ticket):
        queue = FifoQueue()

        positions = [queue.push(ticket(chat, seq)) for chat, seq in [(1, 1), (2, 2), (1, 3)]]

        assert positions == [1, 2, 3]
        assert queue.snapshot() == [(1, 1), (2, 2), (1, 3)]
        assert [queue.pop().command.sequence for _ in range(3)] == [1, 2, 3]
        assert queue.pop() is None

    def test_drain_empties(self, ticket):
        queue = FifoQueue()
        queue.push(ticket(1, 1))
        queue.push(ticket(1, 2))

        drained = queue.drain()

        assert [t.command.sequence for t in drained] == [1, 2]
        assert len(queue) == 0


class TestRoundRobinQueue:

    def test_rotates_between_chats(self, ticket):
        queue = RoundRobinQueue()
        for chat, seq in [(1, 1), (1, 2), (1, 3), (2, 4), (3, 5)]:
            queue.push(ticket(chat, seq))

        order = []
        while len(queue):
            order.append(queue.pop().command.sequence)

        assert order == [1, 4, 5, 2, 3]
        assert queue.pop() is None

    def test_position_reflects_service_order(self, ticket):
        queue = RoundRobinQueue()

        assert queue.push(ticket(1, 1)) == 1
        assert queue.push(ticket(1, 2)) == 2
        # Chat 2's first ticket is served before chat 1's second
        assert queue.push(ticket(2, 3)) == 2
        assert queue.snapshot() == [(1, 1), (2, 3), (1, 2)]

    def test_position_matches_service_order_across_rotation(self, ticket):
        queue = RoundRobinQueue()

        def push(chat, seq):
            position = queue.push(ticket(chat, seq))
            assert queue.snapshot()[position - 1] == (chat, seq)
            return position

        positions = [push(chat, seq) for chat, seq in [(1, 1), (1, 2), (2, 3), (3, 4), (2, 5), (1, 6)]]
        assert positions == [1, 2, 2, 3, 5, 6]

        # Serving chat 1 moves its lane to the back of the rotation
        queue.pop()
        assert push(3, 7) == 5
        assert queue.snapshot() == [(2, 3), (3, 4), (1, 2), (2, 5), (3, 7), (1, 6)]

    def test_iteration_does_not_consume(self, ticket):
        queue = RoundRobinQueue()
        queue.push(ticket(1, 1))
        queue.push(ticket(2, 2))

        assert [t.command.sequence for t in queue] == [1, 2]
        assert len(queue) == 2

    def test_drain_in_service_order(self, ticket):
        queue = RoundRobinQueue()
        for chat, seq in [(1, 1), (1, 2), (2, 3)]:
            queue.push(ticket(chat, seq))

        assert [t.command.sequence for t in queue.drain()] == [1, 3, 2]
        assert len(queue) == 0
        assert queue.pop() is None


def test_make_queue_by_policy():
    assert isinstance(make_queue("fifo"), FifoQueue)
    assert isinstance(make_queue("round_robin"), RoundRobinQueue)
    with pytest.raises(ValueError):
        make_queue("lifo")
