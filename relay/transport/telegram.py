"""
Telegram Bot API transport.

Uses direct REST calls (https://api.telegram.org/bot<token>/<method>),
no SDK required.

- TelegramClient: getUpdates / sendMessage / setMyCommands
- TelegramPoller: long-poll event source (async iterator of InboundEvent)
- TelegramReplySink: best-effort outcome delivery
"""
import asyncio
from typing import AsyncIterator, Awaitable, Callable, List, Optional

import httpx

from ..core.admission.backoff import BackoffPolicy
from ..core.admission.types import Outcome
from ..core.classifier import COMMANDS, InboundEvent
from ..core.config import TelegramConfig
from ..core.errors import TransportError
from ..core.logger import log, Component
from ..core.replies import render_outcome


def update_to_event(update: dict) -> Optional[InboundEvent]:
    """Convert a Bot API Update into an InboundEvent; None for non-text updates."""
    message = update.get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("text")
    chat = message.get("chat") or {}
    if not isinstance(text, str) or "id" not in chat or "update_id" not in update:
        return None
    return InboundEvent(
        chat_id=chat["id"],
        text=text,
        sequence=update["update_id"],
        message_id=message.get("message_id"),
    )


class TelegramClient:
    """
    Async Telegram Bot API client using direct REST calls.
    """

    def __init__(self, config: TelegramConfig, http_client: Optional[httpx.AsyncClient] = None):
        if not config.token:
            raise ValueError("Telegram bot token is not set (RELAY_TELEGRAM_TOKEN or TELOXIDE_TOKEN)")
        self.config = config
        # Long polls hold the connection for poll_timeout seconds
        self._client = http_client or httpx.AsyncClient(timeout=config.poll_timeout + 10)

    def _url(self, method: str) -> str:
        return f"{self.config.api_url}/bot{self.config.token}/{method}"

    async def call(self, method: str, payload: Optional[dict] = None):
        """Invoke a Bot API method and return its `result`."""
        try:
            response = await self._client.post(self._url(method), json=payload or {})
        except httpx.HTTPError as e:
            raise TransportError(f"{method}: {type(e).__name__}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"{method}: HTTP {response.status_code}, body is not JSON") from e

        if not isinstance(body, dict):
            raise TransportError(f"{method}: HTTP {response.status_code}, unexpected body")
        if not body.get("ok"):
            raise TransportError(
                f"{method}: {body.get('error_code', response.status_code)} {body.get('description', '')}".strip()
            )
        return body.get("result")

    async def get_updates(self, offset: Optional[int] = None, timeout: Optional[int] = None) -> List[dict]:
        payload = {
            "timeout": self.config.poll_timeout if timeout is None else timeout,
            "allowed_updates": ["message"],
        }
        if offset is not None:
            payload["offset"] = offset
        return await self.call("getUpdates", payload) or []

    async def send_message(self, chat_id, text: str, reply_to: Optional[int] = None) -> dict:
        payload = {"chat_id": chat_id, "text": text}
        if reply_to is not None:
            payload["reply_parameters"] = {
                "message_id": reply_to,
                "allow_sending_without_reply": True,
            }
        return await self.call("sendMessage", payload)

    async def set_my_commands(self) -> bool:
        """Register the command list shown by Telegram clients."""
        commands = [{"command": c.name, "description": c.description} for c in COMMANDS]
        return bool(await self.call("setMyCommands", {"commands": commands}))

    async def set_webhook(self, url: str, secret: str = "") -> bool:
        payload = {"url": url, "allowed_updates": ["message"]}
        if secret:
            payload["secret_token"] = secret
        return bool(await self.call("setWebhook", payload))

    async def close(self):
        await self._client.aclose()


class TelegramPoller:
    """
    Inbound event source over getUpdates long polling.

    Lazy and infinite. After a network error it reconnects with backoff and
    resumes from the last acknowledged offset, so an update may be delivered
    again (at-least-once).
    """

    def __init__(
        self,
        client: TelegramClient,
        reconnect: Optional[BackoffPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._reconnect = reconnect or BackoffPolicy(retries=5, base=1.0, multiplier=2.0)
        if self._reconnect.retries < 1:
            raise ValueError("reconnect policy needs at least one retry step")
        self._sleep = sleep
        self.offset: Optional[int] = None

    async def __aiter__(self) -> AsyncIterator[InboundEvent]:
        failures = 0
        while True:
            try:
                updates = await self._client.get_updates(offset=self.offset)
            except TransportError as e:
                failures += 1
                # Delay grows with consecutive failures, then stays at the cap
                delay = self._reconnect.delay(min(failures, self._reconnect.retries))
                log.warn(f"getUpdates failed ({e}), reconnecting in {delay:.1f}s",
                         component=Component.BOT, failures=failures)
                await self._sleep(delay)
                continue

            if failures:
                log.bot("Reconnected", after_failures=failures)
            failures = 0

            for update in updates:
                update_id = update.get("update_id")
                if isinstance(update_id, int):
                    self.offset = update_id + 1
                event = update_to_event(update)
                if event is None:
                    log.debug("Skipping non-text update", component=Component.BOT, update=update_id)
                    continue
                yield event


class TelegramReplySink:
    """
    Sends outcome text back to the originating chat. Best effort: a failed
    send is logged and counted, never retried.
    """

    def __init__(self, client: TelegramClient, reply_unrecognized: bool = True):
        self._client = client
        self.reply_unrecognized = reply_unrecognized
        self.sent = 0
        self.failed = 0

    async def deliver(self, outcome: Outcome) -> bool:
        text = render_outcome(outcome, reply_unrecognized=self.reply_unrecognized)
        if text is None:
            log.debug("Outcome not sent (silenced)", component=Component.BOT,
                      chat=outcome.chat_id, seq=outcome.sequence)
            return False
        try:
            await self._client.send_message(outcome.chat_id, text, reply_to=outcome.reply_to)
        except TransportError as e:
            self.failed += 1
            log.error(f"Reply delivery failed: {e}", component=Component.BOT,
                      chat=outcome.chat_id, seq=outcome.sequence)
            return False
        self.sent += 1
        log.bot("Reply sent", chat=outcome.chat_id, seq=outcome.sequence, chars=len(text))
        return True
