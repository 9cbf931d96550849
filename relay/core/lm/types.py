"""
LM Types — endpoint health snapshot and client protocol.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class EndpointStatus(Enum):
    """Status values reported by the llama.cpp /health endpoint."""
    OK = "ok"
    LOADING = "loading model"
    NO_SLOT = "no slot available"
    ERROR = "error"
    UNKNOWN = "unknown"
    UNREACHABLE = "unreachable"
    UNCHECKED = "unchecked"


@dataclass(frozen=True)
class EndpointHealth:
    """Last known state of the LLM endpoint."""
    status: EndpointStatus
    http_status: Optional[int] = None
    slots_idle: Optional[int] = None
    slots_processing: Optional[int] = None
    raw_status: str = ""
    checked_at: Optional[float] = None
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status == EndpointStatus.OK


UNCHECKED = EndpointHealth(status=EndpointStatus.UNCHECKED)


class CompletionClient(Protocol):
    """Anything that can turn a prompt into completion text."""

    async def complete(self, prompt: str) -> str: ...
