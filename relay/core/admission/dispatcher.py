"""
Dispatcher — the only component that calls the LLM endpoint.

Owns the DispatchSlot and turns one admitted ticket into one terminal
Outcome:
    - QueryLLM: slot-bound external call, local timeout T, up to R retries
      with exponential backoff, then Failed(llm_unavailable); a
      non-retryable endpoint error fails at once with Failed(llm_rejected)
    - HealthCheck / Help: answered locally, never touch the slot
    - anything unexpected: Failed(internal_error) for that ticket only

The retry loop is an explicit bounded state machine (attempt counter plus
policy), not recursion.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..errors import LLMRejectedError, LLMUnavailableError, SlotBusyError
from ..logger import log, Component
from ..lm.types import CompletionClient
from .backoff import BackoffPolicy
from .slot import DispatchSlot
from .types import (
    AdmissionTicket,
    Dropped,
    Failed,
    HealthCheck,
    Help,
    Outcome,
    QueryLLM,
    Reason,
    Replied,
)


class Dispatcher:
    """
    Single-slot executor for admitted tickets.
    """

    def __init__(
        self,
        llm: CompletionClient,
        policy: Optional[BackoffPolicy] = None,
        timeout: float = 60.0,
        help_text: Callable[[], str] = lambda: "",
        status_text: Callable[[], str] = lambda: "",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._llm = llm
        self.policy = policy or BackoffPolicy()
        self.timeout = timeout
        self._help_text = help_text
        self._status_text = status_text
        self._sleep = sleep
        self._clock = clock
        self.slot = DispatchSlot()

        # Stats
        self._calls = 0
        self._retries = 0
        self._failures = 0

        log.dispatch("Dispatcher initialized",
                     timeout=f"{timeout}s",
                     retries=self.policy.retries,
                     backoff=f"{self.policy.base}x{self.policy.multiplier}")

    @property
    def busy(self) -> bool:
        return self.slot.occupied

    def answer_locally(self, ticket: AdmissionTicket) -> Optional[Outcome]:
        """Outcome for commands that never need the slot, else None."""
        command = ticket.command
        kind = command.kind
        try:
            if isinstance(kind, Help):
                return Outcome.for_command(command, Replied(self._help_text()))
            if isinstance(kind, HealthCheck):
                return Outcome.for_command(command, Replied(self._status_text()))
        except Exception as e:
            log.error(f"Local reply failed: {e!r}", component=Component.DISPATCH)
            return Outcome.for_command(command, Failed(Reason.INTERNAL_ERROR))
        if not isinstance(kind, QueryLLM):
            return Outcome.for_command(command, Dropped(Reason.UNRECOGNIZED))
        return None

    async def dispatch(self, ticket: AdmissionTicket) -> Outcome:
        """Serve one ticket. Never raises, always returns exactly one Outcome."""
        local = self.answer_locally(ticket)
        if local is not None:
            return local

        command = ticket.command
        try:
            async with self.slot.hold(ticket):
                return await self._query(ticket)
        except SlotBusyError as e:
            log.error(f"Slot invariant violated: {e}", component=Component.DISPATCH)
            return Outcome.for_command(command, Failed(Reason.INTERNAL_ERROR))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(f"Dispatch crashed: {e!r}", component=Component.DISPATCH)
            return Outcome.for_command(command, Failed(Reason.INTERNAL_ERROR))

    async def _query(self, ticket: AdmissionTicket) -> Outcome:
        command = ticket.command
        prompt = command.kind.text
        started = self._clock()
        attempt = 0

        while True:
            attempt += 1
            self._calls += 1
            log.dispatch(f"LLM call attempt {attempt}/{self.policy.max_attempts}",
                         prompt=log.preview(prompt))
            try:
                text = await asyncio.wait_for(self._llm.complete(prompt), timeout=self.timeout)
                log.dispatch("LLM call succeeded",
                             attempts=attempt,
                             elapsed=f"{self._clock() - started:.2f}s")
                return Outcome.for_command(command, Replied(text))

            except LLMRejectedError as e:
                self._failures += 1
                log.warn(f"LLM rejected request: {e}", component=Component.DISPATCH)
                return Outcome.for_command(command, Failed(Reason.LLM_REJECTED))

            except (asyncio.TimeoutError, LLMUnavailableError) as e:
                cause = f"timeout after {self.timeout}s" if isinstance(e, asyncio.TimeoutError) else str(e)
                if attempt >= self.policy.max_attempts:
                    self._failures += 1
                    log.warn(f"LLM unavailable, giving up: {cause}",
                             component=Component.DISPATCH,
                             attempts=attempt,
                             elapsed=f"{self._clock() - started:.2f}s")
                    return Outcome.for_command(command, Failed(Reason.LLM_UNAVAILABLE))

                delay = self.policy.delay(attempt)
                self._retries += 1
                log.warn(f"LLM attempt {attempt} failed ({cause}), retrying in {delay:.2f}s",
                         component=Component.DISPATCH)
                await self._sleep(delay)

    def get_stats(self) -> dict:
        return {
            "busy": self.busy,
            "calls": self._calls,
            "retries": self._retries,
            "failures": self._failures,
            "slot_acquisitions": self.slot.acquisitions,
        }
