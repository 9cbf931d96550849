"""
Health Router for the relay API.

Endpoints:
- GET /api/health
"""
from fastapi import APIRouter, Request

from ...core.lm import UNCHECKED
from ..schemas import DispatcherStats, EndpointSnapshot, GateStats, HealthResponse

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health(request: Request):
    """Gate state plus the last cached endpoint probe. Never calls the LLM."""
    bot = request.app.state.bot
    endpoint = bot.probe.snapshot if bot.probe is not None else UNCHECKED
    return HealthResponse(
        gate=GateStats(**bot.gate.stats()),
        dispatcher=DispatcherStats(**bot.dispatcher.get_stats()),
        endpoint=EndpointSnapshot(
            status=endpoint.status.value,
            http_status=endpoint.http_status,
            slots_idle=endpoint.slots_idle,
            slots_processing=endpoint.slots_processing,
            checked_at=endpoint.checked_at,
            error=endpoint.error,
        ),
    )
