"""Tests for DispatchSlot."""
import pytest

from relay.core.admission import AdmissionTicket, DispatchSlot
from relay.core.errors import SlotBusyError


@pytest.fixture
def ticket(command):
    def make(sequence=1):
        return AdmissionTicket(command=command(1, sequence), enqueued_at=0.0)
    return make


class TestDispatchSlot:

    @pytest.mark.asyncio
    async def test_hold_and_release(self, ticket):
        slot = DispatchSlot()
        t = ticket()

        async with slot.hold(t) as held:
            assert held is t
            assert slot.occupied
            assert slot.holder is t

        assert not slot.occupied
        assert slot.acquisitions == 1

    @pytest.mark.asyncio
    async def test_released_on_error(self, ticket):
        slot = DispatchSlot()

        with pytest.raises(RuntimeError):
            async with slot.hold(ticket()):
                raise RuntimeError("boom")

        assert not slot.occupied

    @pytest.mark.asyncio
    async def test_second_hold_refused_without_disturbing_holder(self, ticket):
        slot = DispatchSlot()
        first = ticket(1)

        async with slot.hold(first):
            with pytest.raises(SlotBusyError):
                async with slot.hold(ticket(2)):
                    pass
            assert slot.holder is first

        assert slot.acquisitions == 1
