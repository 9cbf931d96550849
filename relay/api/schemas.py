"""
Pydantic Schemas for the relay HTTP surface.
"""
from typing import Optional
from pydantic import BaseModel


class GateStats(BaseModel):
    """Admission gate counters."""
    busy: bool
    pending: int
    capacity: int
    fairness: str
    in_flight: bool
    admitted: int = 0
    enqueued: int = 0
    rejected: int = 0
    answered: int = 0
    duplicates: int = 0
    stale: int = 0
    completed: int = 0


class DispatcherStats(BaseModel):
    busy: bool
    calls: int = 0
    retries: int = 0
    failures: int = 0
    slot_acquisitions: int = 0


class EndpointSnapshot(BaseModel):
    """Last cached llama.cpp /health answer."""
    status: str
    http_status: Optional[int] = None
    slots_idle: Optional[int] = None
    slots_processing: Optional[int] = None
    checked_at: Optional[float] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    gate: GateStats
    dispatcher: DispatcherStats
    endpoint: EndpointSnapshot


class WebhookAck(BaseModel):
    ok: bool = True
    queued: bool
