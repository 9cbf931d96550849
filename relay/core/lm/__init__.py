"""
LM Package — the LLM endpoint collaborator.

Modules:
- types: EndpointHealth, EndpointStatus, CompletionClient
- client: LlamaClient (chat completions, failure classification)
- health: EndpointProbe (cached /health polling)
"""

from .types import EndpointHealth, EndpointStatus, CompletionClient, UNCHECKED
from .client import LlamaClient
from .health import EndpointProbe

__all__ = [
    "EndpointHealth",
    "EndpointStatus",
    "CompletionClient",
    "UNCHECKED",
    "LlamaClient",
    "EndpointProbe",
]
