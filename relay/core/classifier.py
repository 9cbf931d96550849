"""
Command Classifier for the relay.

Maps raw chat text to exactly one command kind. Pure and total: no I/O,
no exceptions, every string yields one of QueryLLM, HealthCheck, Help or
Unrecognized.

Recognized commands (lowercase, optional @botname suffix):
    /qwen <text>   LLM request (alias: /ask)
    /help          Prints the command list
    /health        Health check
"""
import re
from dataclasses import dataclass
from typing import Hashable, Optional

from .admission.types import (
    CommandKind,
    HealthCheck,
    Help,
    InboundCommand,
    QueryLLM,
    Unrecognized,
)


@dataclass(frozen=True)
class CommandSpec:
    name: str
    description: str


# Order is the order shown by /help
COMMANDS = (
    CommandSpec("qwen", "LLM request"),
    CommandSpec("help", "Prints this help"),
    CommandSpec("health", "Health check"),
)

QUERY_COMMANDS = {"qwen", "ask"}

# /command[@botname][ <args>]
COMMAND_RE = re.compile(r"^/(?P<name>[A-Za-z0-9_]+)(?:@[A-Za-z0-9_]+)?(?:\s+(?P<args>.*))?$", re.S)


@dataclass(frozen=True)
class InboundEvent:
    """Raw inbound chat event as produced by a transport."""
    chat_id: Hashable
    text: str
    sequence: int
    message_id: Optional[int] = None


def classify_text(text: str) -> CommandKind:
    """Classify raw message text. Deterministic and total."""
    stripped = (text or "").strip()
    match = COMMAND_RE.match(stripped)
    if not match:
        return Unrecognized(raw=stripped)

    # Commands are case-sensitive lowercase, as registered with the platform
    name = match.group("name")
    args = (match.group("args") or "").strip()

    if name in QUERY_COMMANDS:
        return QueryLLM(text=args) if args else Unrecognized(raw=stripped)
    if name == "help" and not args:
        return Help()
    if name == "health" and not args:
        return HealthCheck()
    return Unrecognized(raw=stripped)


def build_command(event: InboundEvent, received_at: float) -> InboundCommand:
    """Wrap a classified event into an immutable InboundCommand."""
    return InboundCommand(
        chat_id=event.chat_id,
        sequence=event.sequence,
        kind=classify_text(event.text),
        received_at=received_at,
        reply_to=event.message_id,
    )
