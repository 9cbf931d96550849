"""
Reply texts for the relay.

Turns terminal outcomes, gate statistics and endpoint health into the
short user-facing messages sent back to the chat.
"""
from typing import Optional

from .admission.types import Dropped, Failed, Outcome, Reason, Replied
from .classifier import COMMANDS
from .lm.types import EndpointHealth, EndpointStatus

# Telegram rejects longer messages
MAX_MESSAGE_LENGTH = 4096
TRUNCATION_MARK = "\n…"

REASON_MESSAGES = {
    Reason.OVERLOADED: "The bot is busy right now, too many requests are waiting. Please try again in a moment.",
    Reason.STALE: "Your request waited too long in the queue and was skipped. Please send it again.",
    Reason.LLM_UNAVAILABLE: "The language model is not responding. Please try again later.",
    Reason.LLM_REJECTED: "The language model rejected the request.",
    Reason.INTERNAL_ERROR: "An internal error occurred while processing the request.",
    Reason.UNRECOGNIZED: "Unknown command. Send /help for the list of commands.",
    Reason.SHUTTING_DOWN: "The bot is restarting, your request was not processed. Please send it again.",
}

EMPTY_COMPLETION = "The model returned an empty response."


def help_text() -> str:
    lines = ["These commands are supported:", ""]
    lines.extend(f"/{c.name} — {c.description}" for c in COMMANDS)
    return "\n".join(lines)


def describe_endpoint(health: EndpointHealth) -> str:
    """One-line endpoint status, worded like the llama.cpp status values."""
    slots = f"Slots idle: {health.slots_idle or 0}, Slots processing: {health.slots_processing or 0}"
    status = health.status
    if status == EndpointStatus.OK:
        return f"Everything is working fine. {slots}"
    if status == EndpointStatus.NO_SLOT:
        return f"No slots are currently available. {slots}"
    if status == EndpointStatus.LOADING:
        return "The model is still being loaded. Please wait."
    if status == EndpointStatus.ERROR:
        return "An error occurred while loading the model."
    if status == EndpointStatus.UNREACHABLE:
        return "The model server is unreachable."
    if status == EndpointStatus.UNCHECKED:
        return "The model server has not been checked yet."
    if health.raw_status:
        return f"Unknown status: {health.raw_status}"
    return f"Unexpected status: {health.http_status}"


def health_summary(stats: dict, endpoint: EndpointHealth) -> str:
    """Status text for the /health command, built from local state only."""
    slot = "busy" if stats.get("busy") else "idle"
    return "\n".join([
        describe_endpoint(endpoint),
        f"Relay: LLM slot {slot}, {stats.get('pending', 0)}/{stats.get('capacity', 0)} requests waiting.",
    ])


def truncate(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - len(TRUNCATION_MARK)] + TRUNCATION_MARK


def render_outcome(outcome: Outcome, reply_unrecognized: bool = True) -> Optional[str]:
    """Text to send for an outcome, or None when nothing should be sent."""
    result = outcome.result
    if isinstance(result, Replied):
        return truncate(result.text if result.text.strip() else EMPTY_COMPLETION)
    if isinstance(result, (Failed, Dropped)):
        if result.reason == Reason.UNRECOGNIZED and not reply_unrecognized:
            return None
        return REASON_MESSAGES[result.reason]
    raise TypeError(f"Unknown outcome result: {result!r}")
