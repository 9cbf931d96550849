"""
Transport Package — messaging platform collaborators.

Modules:
- telegram: Bot API client, long-poll event source, reply sink
- source: in-process queue event source (webhook ingress, tests)
"""

from .telegram import TelegramClient, TelegramPoller, TelegramReplySink, update_to_event
from .source import QueueEventSource

__all__ = [
    "TelegramClient",
    "TelegramPoller",
    "TelegramReplySink",
    "update_to_event",
    "QueueEventSource",
]
