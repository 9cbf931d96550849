from .types import (
    QueryLLM,
    HealthCheck,
    Help,
    Unrecognized,
    CommandKind,
    InboundCommand,
    AdmissionTicket,
    Reason,
    Replied,
    Failed,
    Dropped,
    Outcome,
    AdmissionStatus,
    AdmissionDecision,
)
from .backoff import BackoffPolicy
from .slot import DispatchSlot
from .queue import FifoQueue, RoundRobinQueue, make_queue
from .dispatcher import Dispatcher
from .gate import AdmissionGate

__all__ = [
    'QueryLLM', 'HealthCheck', 'Help', 'Unrecognized', 'CommandKind',
    'InboundCommand', 'AdmissionTicket',
    'Reason', 'Replied', 'Failed', 'Dropped', 'Outcome',
    'AdmissionStatus', 'AdmissionDecision',
    'BackoffPolicy', 'DispatchSlot', 'FifoQueue', 'RoundRobinQueue', 'make_queue',
    'Dispatcher', 'AdmissionGate',
]
