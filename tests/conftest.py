"""
Pytest configuration and fixtures for relay tests.
"""
import asyncio
from typing import List, Optional

import pytest
import pytest_asyncio

from relay.core.admission import AdmissionGate, BackoffPolicy, Dispatcher
from relay.core.classifier import InboundEvent, build_command
from relay.core.config import AdmissionConfig


# ============= Fake LLM =============

HANG = object()


class FakeLLM:
    """
    Scripted CompletionClient.

    Each call consumes the next script step: a string is returned, an
    exception is raised, HANG never completes. With an empty script every
    call returns `reply`. While `blocker` is set to an unset Event, calls
    wait on it first.
    """

    def __init__(self, reply: str = "Mocked AI response", script: Optional[list] = None):
        self.reply = reply
        self.script = list(script or [])
        self.blocker: Optional[asyncio.Event] = None
        self.delay = 0.0
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    def block(self) -> asyncio.Event:
        self.blocker = asyncio.Event()
        return self.blocker

    async def complete(self, prompt: str) -> str:
        self.calls.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.blocker is not None:
                await self.blocker.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            step = self.script.pop(0) if self.script else self.reply
            if step is HANG:
                await asyncio.Event().wait()
            if isinstance(step, BaseException):
                raise step
            return step
        finally:
            self.active -= 1


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """asyncio.sleep stand-in that records delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.delays)


class RecordingSink:
    """Collects delivered outcomes."""

    def __init__(self):
        self.outcomes = []

    async def deliver(self, outcome):
        self.outcomes.append(outcome)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def hang():
    """Script step for a call that never completes."""
    return HANG


@pytest.fixture
def command():
    """Factory: command(chat_id, sequence, text) -> InboundCommand."""
    def make(chat_id=1, sequence=1, text="/qwen hello", message_id=None):
        event = InboundEvent(chat_id=chat_id, text=text, sequence=sequence, message_id=message_id)
        return build_command(event, received_at=0.0)
    return make


# ============= Gate =============

@pytest_asyncio.fixture
async def make_gate(fake_llm, clock, sleep, sink):
    """
    Factory for started gates wired to the fake LLM, clock, sleep and sink.
    Every gate is stopped at teardown.
    """
    gates = []

    def make(
        llm=None,
        capacity: int = 8,
        max_wait: float = 30.0,
        fairness: str = "fifo",
        timeout: float = 5.0,
        retries: int = 3,
        status_text=lambda: "status",
    ) -> AdmissionGate:
        dispatcher = Dispatcher(
            llm or fake_llm,
            policy=BackoffPolicy(retries=retries, base=1.0, multiplier=2.0),
            timeout=timeout,
            help_text=lambda: "help",
            status_text=status_text,
            sleep=sleep,
            clock=clock,
        )
        gate = AdmissionGate(
            dispatcher,
            AdmissionConfig(capacity=capacity, max_wait=max_wait, fairness=fairness),
            on_outcome=sink.deliver,
            clock=clock,
        )
        gate.start()
        gates.append(gate)
        return gate

    yield make

    for gate in gates:
        await gate.stop()
