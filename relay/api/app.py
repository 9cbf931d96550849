"""
Relay API Application.

FastAPI app serving the status endpoint and, in webhook mode, the
Telegram update ingress. The lifespan runs the relay pipeline alongside
the server when asked to.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..bot import RelayBot
from ..core.logger import log
from ..transport.source import QueueEventSource
from .routers import health_router, webhook_router


def create_app(
    bot: RelayBot,
    source: Optional[QueueEventSource] = None,
    webhook_secret: str = "",
    manage_bot: bool = False,
) -> FastAPI:
    """
    Build the app around an existing relay.

    With manage_bot the lifespan runs bot.run(source) for the life of the
    server and stops it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ===== STARTUP =====
        task = None
        if manage_bot and source is not None:
            task = asyncio.create_task(bot.run(source), name="relay-pipeline")
            log.api("Relay pipeline started with the server")

        yield  # Application runs here

        # ===== SHUTDOWN =====
        if task is not None:
            if source is not None:
                source.close()
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            log.api("Relay pipeline stopped")

    app = FastAPI(
        title="llama-relay",
        description="Telegram to llama.cpp relay",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bot = bot
    app.state.source = source
    app.state.webhook_secret = webhook_secret

    app.include_router(health_router)
    app.include_router(webhook_router)
    return app
