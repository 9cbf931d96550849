"""
Admission Gate — bounded, fair access to the single dispatch slot.

For every inbound command the gate decides, in one non-blocking step:
    - answer at once without the slot (health, help, unrecognized)
    - admit straight to the dispatcher when the slot is idle
    - enqueue when the slot is busy and capacity remains
    - reject with Dropped(overloaded) when the queue holds N tickets

A single scheduler task ("pump") pops the next ticket whenever the slot
frees, dropping tickets that waited longer than max_wait as Dropped(stale).

All gate state lives on one event loop. submit() never awaits, so the
admit/enqueue/reject decision and the pump's pop-next are atomic with
respect to each other.
"""
import asyncio
import inspect
import time
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Optional, Set, Union

from ..config import AdmissionConfig
from ..logger import log, Component
from .dispatcher import Dispatcher
from .queue import make_queue
from .types import (
    AdmissionDecision,
    AdmissionStatus,
    AdmissionTicket,
    Dropped,
    Failed,
    InboundCommand,
    Outcome,
    Reason,
)

OutcomeHandler = Callable[[Outcome], Union[Awaitable[None], None]]

STOP_POLL = 0.1   # seconds between cancel attempts while stopping


class AdmissionGate:
    """
    Admission control in front of the Dispatcher.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        config: Optional[AdmissionConfig] = None,
        on_outcome: Optional[OutcomeHandler] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or AdmissionConfig()
        self._dispatcher = dispatcher
        self._on_outcome = on_outcome
        self._clock = clock

        self._queue = make_queue(self.config.fairness)
        self._busy = False                       # a ticket is handed off or in the slot
        self._handoff: Optional[AdmissionTicket] = None
        self._current: Optional[AdmissionTicket] = None
        self._wakeup = asyncio.Event()
        self._pump: Optional[asyncio.Task] = None
        self._closed = False

        self._seen: "OrderedDict[tuple, asyncio.Future]" = OrderedDict()
        self._live: Dict[tuple, asyncio.Future] = {}   # handed off, queued or in the slot
        self._deliveries: Set[asyncio.Task] = set()

        # Stats
        self._counts = {
            "admitted": 0,
            "enqueued": 0,
            "rejected": 0,
            "answered": 0,
            "duplicates": 0,
            "stale": 0,
            "completed": 0,
        }

        log.gate("AdmissionGate initialized",
                 capacity=self.config.capacity,
                 max_wait=f"{self.config.max_wait}s",
                 fairness=self.config.fairness)

    # ============= Lifecycle =============

    def start(self):
        """Start the scheduler task on the running loop."""
        if self._pump is None or self._pump.done():
            self._closed = False
            self._pump = asyncio.create_task(self._run(), name="admission-pump")

    async def stop(self):
        """Stop scheduling; every held ticket resolves Dropped(shutting_down)."""
        self._closed = True
        self._wakeup.set()
        pump, self._pump = self._pump, None
        # A cancel can be absorbed by a call that completes at the same moment
        while pump is not None and not pump.done():
            pump.cancel()
            await asyncio.wait({pump}, timeout=STOP_POLL)
        if pump is not None and not pump.cancelled() and pump.exception() is not None:
            log.error(f"Scheduler task failed: {pump.exception()!r}", component=Component.GATE)

        leftovers = []
        if self._handoff is not None:
            leftovers.append(self._handoff)
            self._handoff = None
        leftovers.extend(self._queue.drain())
        for ticket in leftovers:
            self._finish(ticket, Dropped(Reason.SHUTTING_DOWN))
        self._busy = False

        if self._deliveries:
            await asyncio.gather(*self._deliveries, return_exceptions=True)
        log.gate("AdmissionGate stopped", dropped=len(leftovers))

    # ============= Admission =============

    def submit(self, command: InboundCommand) -> AdmissionDecision:
        """Decide admission for one command. Never blocks.

        Constant time, except the round-robin position which walks the chats.
        """
        loop = asyncio.get_running_loop()
        log.set_request_id(f"{command.chat_id}:{command.sequence}")

        known = self._live.get(command.key)
        if known is None:
            known = self._seen.get(command.key)
        if known is not None:
            self._counts["duplicates"] += 1
            log.gate("Duplicate delivery ignored", chat=command.chat_id, seq=command.sequence)
            return AdmissionDecision(AdmissionStatus.DUPLICATE, outcome=known)

        ticket = AdmissionTicket(
            command=command,
            enqueued_at=self._clock(),
            outcome=loop.create_future(),
        )
        self._remember(ticket)

        if self._closed:
            self._counts["rejected"] += 1
            self._finish(ticket, Dropped(Reason.SHUTTING_DOWN))
            return AdmissionDecision(AdmissionStatus.REJECTED, outcome=ticket.outcome)

        # Health, help and unrecognized never wait on the slot
        if not command.needs_slot:
            self._counts["answered"] += 1
            self._finish(ticket, self._dispatcher.answer_locally(ticket))
            return AdmissionDecision(AdmissionStatus.ANSWERED, outcome=ticket.outcome)

        if not self._busy:
            self._busy = True
            self._handoff = ticket
            self._live[command.key] = ticket.outcome
            self._counts["admitted"] += 1
            self._wakeup.set()
            log.gate("Admitted", chat=command.chat_id, seq=command.sequence)
            return AdmissionDecision(AdmissionStatus.ADMITTED, outcome=ticket.outcome)

        if len(self._queue) >= self.config.capacity:
            self._counts["rejected"] += 1
            log.warn("Queue full, rejecting", component=Component.GATE,
                     pending=len(self._queue), capacity=self.config.capacity)
            self._finish(ticket, Dropped(Reason.OVERLOADED))
            return AdmissionDecision(AdmissionStatus.REJECTED, outcome=ticket.outcome)

        self._live[command.key] = ticket.outcome
        position = self._queue.push(ticket)
        self._counts["enqueued"] += 1
        log.gate("Enqueued", chat=command.chat_id, seq=command.sequence, pos=position)
        return AdmissionDecision(AdmissionStatus.ENQUEUED, outcome=ticket.outcome, position=position)

    def _remember(self, ticket: AdmissionTicket):
        window = self.config.dedupe_window
        if window <= 0:
            return
        self._seen[ticket.command.key] = ticket.outcome
        while len(self._seen) > window:
            self._seen.popitem(last=False)

    # ============= Scheduling =============

    async def _run(self):
        """Scheduler loop: serve the next ticket whenever the slot is free."""
        while not self._closed:
            ticket = self._next_ticket()
            if ticket is None:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            await self._serve(ticket)

    def _next_ticket(self) -> Optional[AdmissionTicket]:
        """Next ticket to serve; stale tickets are dropped on the way."""
        if self._handoff is not None:
            ticket, self._handoff = self._handoff, None
            return ticket

        while True:
            ticket = self._queue.pop()
            if ticket is None:
                self._busy = False
                return None
            waited = ticket.waited(self._clock())
            if waited > self.config.max_wait:
                ticket.cancelled = True
                self._counts["stale"] += 1
                log.warn(f"Ticket stale after {waited:.1f}s", component=Component.GATE,
                         chat=ticket.command.chat_id, seq=ticket.command.sequence)
                self._finish(ticket, Dropped(Reason.STALE))
                continue
            return ticket

    async def _serve(self, ticket: AdmissionTicket):
        command = ticket.command
        log.set_request_id(f"{command.chat_id}:{command.sequence}")
        self._current = ticket
        try:
            outcome = await self._dispatcher.dispatch(ticket)
        except asyncio.CancelledError:
            self._finish(ticket, Dropped(Reason.SHUTTING_DOWN))
            raise
        except Exception as e:
            log.error(f"Dispatcher raised: {e!r}", component=Component.GATE)
            outcome = Outcome.for_command(command, Failed(Reason.INTERNAL_ERROR))
        finally:
            self._current = None
        self._finish(ticket, outcome)

    # ============= Outcomes =============

    def _finish(self, ticket: AdmissionTicket, outcome: Union[Outcome, Dropped, Failed]):
        """Resolve a ticket's single terminal outcome, trace it and deliver it."""
        if not isinstance(outcome, Outcome):
            outcome = Outcome.for_command(ticket.command, outcome)
        future = ticket.outcome
        if future is not None and future.done():
            log.error("Second outcome for a ticket discarded", component=Component.GATE,
                      chat=outcome.chat_id, seq=outcome.sequence, result=outcome.label)
            return
        if future is not None:
            future.set_result(outcome)
        self._live.pop(ticket.command.key, None)

        self._counts["completed"] += 1
        reason = outcome.reason.value if outcome.reason else None
        log.outcome(outcome.chat_id, outcome.sequence, outcome.label, reason)

        if self._on_outcome is not None:
            self._deliver(outcome)

    def _deliver(self, outcome: Outcome):
        try:
            result = self._on_outcome(outcome)
        except Exception as e:
            log.error(f"Outcome handler failed: {e!r}", component=Component.GATE)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._deliveries.add(task)
            task.add_done_callback(self._delivery_done)

    def _delivery_done(self, task: asyncio.Task):
        self._deliveries.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error(f"Outcome delivery failed: {task.exception()!r}", component=Component.GATE)

    # ============= Introspection =============

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending(self) -> int:
        return len(self._queue)

    def stats(self) -> dict:
        return {
            "busy": self._busy,
            "pending": len(self._queue),
            "capacity": self.config.capacity,
            "fairness": self.config.fairness,
            "in_flight": self._current is not None,
            **self._counts,
        }
