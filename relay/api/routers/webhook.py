"""
Webhook Router: Telegram pushes updates here in webhook mode.

Endpoints:
- POST /telegram/webhook
"""
import hmac
from typing import Optional

from fastapi import APIRouter, Body, Header, HTTPException, Request

from ...core.logger import log, Component
from ...transport.telegram import update_to_event
from ..schemas import WebhookAck

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook", response_model=WebhookAck)
async def webhook(
    request: Request,
    update: dict = Body(...),
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
):
    """Accept one Update and push it into the event source."""
    secret = request.app.state.webhook_secret
    if secret and not hmac.compare_digest(x_telegram_bot_api_secret_token or "", secret):
        log.warn("Webhook call with a bad secret token", component=Component.API,
                 update=update.get("update_id"))
        raise HTTPException(status_code=403, detail="Invalid secret token")

    source = request.app.state.source
    if source is None:
        raise HTTPException(status_code=404, detail="Webhook ingress is disabled")

    event = update_to_event(update)
    if event is None:
        return WebhookAck(queued=False)

    queued = source.push(event)
    if not queued:
        log.warn("Webhook update not queued, source closed or full", component=Component.API,
                 update=event.sequence)
    log.api("Webhook update", chat=event.chat_id, seq=event.sequence, queued=queued)
    return WebhookAck(queued=queued)
