"""Admission and dispatch core of the relay."""

from .classifier import InboundEvent, classify_text, build_command
from .admission import AdmissionGate, Dispatcher, Outcome

__all__ = [
    "InboundEvent",
    "classify_text",
    "build_command",
    "AdmissionGate",
    "Dispatcher",
    "Outcome",
]
