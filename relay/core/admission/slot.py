"""
Dispatch Slot — the single in-flight LLM call.

At most one ticket may hold the slot at any instant. Acquisition is scoped:
the slot is freed on every exit path of the `hold()` block.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ..errors import SlotBusyError
from ..logger import log, Component
from .types import AdmissionTicket


class DispatchSlot:
    """Single-occupancy resource representing one external LLM call."""

    def __init__(self):
        self._holder: Optional[AdmissionTicket] = None
        self._acquisitions = 0

    @property
    def occupied(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[AdmissionTicket]:
        return self._holder

    @property
    def acquisitions(self) -> int:
        return self._acquisitions

    @asynccontextmanager
    async def hold(self, ticket: AdmissionTicket) -> AsyncIterator[AdmissionTicket]:
        """Occupy the slot for `ticket` until the block exits.

        Raises SlotBusyError, without touching the current holder, when the
        slot is already occupied.
        """
        # Check-and-set with no await in between: atomic on the event loop
        if self._holder is not None:
            held = self._holder.command
            raise SlotBusyError(
                f"slot held by {held.chat_id}:{held.sequence}, "
                f"refused {ticket.command.chat_id}:{ticket.command.sequence}"
            )
        self._holder = ticket
        self._acquisitions += 1
        log.debug("Slot acquired", component=Component.DISPATCH, seq=ticket.command.sequence)
        try:
            yield ticket
        finally:
            self._holder = None
            log.debug("Slot released", component=Component.DISPATCH, seq=ticket.command.sequence)

