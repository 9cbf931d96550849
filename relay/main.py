"""
Relay entry point.

Polling mode runs the pipeline over getUpdates long polling.
Webhook mode serves the FastAPI app with uvicorn; Telegram pushes updates
to /telegram/webhook and the app lifespan runs the pipeline.
"""
import asyncio
from typing import Optional

import uvicorn

from .api.app import create_app
from .bot import RelayBot
from .core.config import AppConfig
from .core.errors import TransportError
from .core.logger import configure_logging, log, Component
from .transport.source import QueueEventSource
from .transport.telegram import TelegramPoller


async def run_polling(config: AppConfig):
    bot = RelayBot.from_config(config)
    try:
        await bot.run(TelegramPoller(bot.telegram))
    finally:
        await bot.close()


async def run_webhook(config: AppConfig):
    bot = RelayBot.from_config(config)
    source = QueueEventSource()
    app = create_app(bot, source, webhook_secret=config.telegram.webhook_secret, manage_bot=True)

    if config.telegram.webhook_url:
        try:
            await bot.telegram.set_webhook(config.telegram.webhook_url, config.telegram.webhook_secret)
            log.bot("Webhook registered", url=config.telegram.webhook_url)
        except TransportError as e:
            log.error(f"Could not register webhook: {e}", component=Component.BOT)

    server = uvicorn.Server(uvicorn.Config(app, host=config.host, port=config.port, log_level="info"))
    try:
        await server.serve()
    finally:
        await bot.close()


def main(config: Optional[AppConfig] = None):
    """Launch the relay."""
    config = config or AppConfig.from_env()
    configure_logging(show_debug=config.debug)
    print("🚀 Starting llama-relay...")
    print(f"   Transport: {config.telegram.mode}")
    print(f"   LLM endpoint: {config.llama.base_url}")
    if config.telegram.mode == "webhook":
        print(f"   Server: http://{config.host}:{config.port}")
    print()

    runner = run_webhook if config.telegram.mode == "webhook" else run_polling
    try:
        asyncio.run(runner(config))
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == "__main__":
    main()
