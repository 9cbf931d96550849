"""
Admission Types — commands, tickets and outcomes.

Defines the values that flow through the core:
- Command kinds: QueryLLM, HealthCheck, Help, Unrecognized
- InboundCommand: one classified chat command
- AdmissionTicket: a command's place in the pending queue
- Outcome: the single terminal result for a command
- AdmissionDecision: what submit() tells the caller
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Hashable, Optional, Union


# ============= Command kinds =============

@dataclass(frozen=True)
class QueryLLM:
    """Forward text to the LLM endpoint."""
    text: str


@dataclass(frozen=True)
class HealthCheck:
    """Report relay and endpoint status."""


@dataclass(frozen=True)
class Help:
    """List supported commands."""


@dataclass(frozen=True)
class Unrecognized:
    """Input that matched no known command."""
    raw: str = ""


CommandKind = Union[QueryLLM, HealthCheck, Help, Unrecognized]


@dataclass(frozen=True)
class InboundCommand:
    """A classified inbound command. Immutable once built."""
    chat_id: Hashable
    sequence: int
    kind: CommandKind
    received_at: float
    reply_to: Optional[int] = None

    @property
    def key(self) -> tuple:
        """Identity used for de-duplication of re-delivered events."""
        return (self.chat_id, self.sequence)

    @property
    def needs_slot(self) -> bool:
        return isinstance(self.kind, QueryLLM)


@dataclass(eq=False)
class AdmissionTicket:
    """Queue position of a command. Owned by the gate until dispatched.

    `outcome` is resolved once, by the gate, with the terminal Outcome.
    `cancelled` marks a ticket the gate dropped as stale.
    """
    command: InboundCommand
    enqueued_at: float
    cancelled: bool = False
    outcome: Optional[asyncio.Future] = field(default=None, repr=False)

    def waited(self, now: float) -> float:
        return now - self.enqueued_at


# ============= Outcomes =============

class Reason(Enum):
    """Wire-stable reasons carried by Failed and Dropped outcomes."""
    OVERLOADED = "overloaded"
    STALE = "stale"
    LLM_UNAVAILABLE = "llm_unavailable"
    LLM_REJECTED = "llm_rejected"
    INTERNAL_ERROR = "internal_error"
    UNRECOGNIZED = "unrecognized"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class Replied:
    text: str


@dataclass(frozen=True)
class Failed:
    reason: Reason


@dataclass(frozen=True)
class Dropped:
    reason: Reason


Result = Union[Replied, Failed, Dropped]


@dataclass(frozen=True)
class Outcome:
    """Terminal result of processing one inbound command."""
    chat_id: Hashable
    sequence: int
    result: Result
    reply_to: Optional[int] = None

    @classmethod
    def for_command(cls, command: InboundCommand, result: Result) -> "Outcome":
        return cls(
            chat_id=command.chat_id,
            sequence=command.sequence,
            result=result,
            reply_to=command.reply_to,
        )

    @property
    def label(self) -> str:
        """Short result name used in trace records."""
        return type(self.result).__name__.lower()

    @property
    def reason(self) -> Optional[Reason]:
        return getattr(self.result, "reason", None)


# ============= Decisions =============

class AdmissionStatus(Enum):
    ADMITTED = auto()   # slot was idle, handed straight to the dispatcher
    ENQUEUED = auto()   # waiting for the slot
    REJECTED = auto()   # queue full, Dropped(overloaded) already produced
    ANSWERED = auto()   # served without the slot (health, help, unrecognized)
    DUPLICATE = auto()  # (chat_id, sequence) already seen


@dataclass
class AdmissionDecision:
    """Result of AdmissionGate.submit().

    `outcome` resolves exactly once with the command's terminal Outcome.
    For DUPLICATE it is the original command's future when still tracked,
    otherwise None.
    """
    status: AdmissionStatus
    outcome: Optional[asyncio.Future] = field(default=None, repr=False)
    position: int = 0
