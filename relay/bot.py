"""
Relay runtime.

Wires the pipeline:
    event source -> classifier -> admission gate -> dispatcher -> reply sink
"""
import asyncio
import time
from typing import AsyncIterable, Awaitable, Callable, Optional

from .core.admission import AdmissionDecision, AdmissionGate, BackoffPolicy, Dispatcher
from .core.classifier import InboundEvent, build_command
from .core.config import AdmissionConfig, AppConfig, DispatchConfig
from .core.errors import TransportError
from .core.lm import UNCHECKED, CompletionClient, EndpointProbe, LlamaClient
from .core.logger import log, Component
from .core.replies import health_summary, help_text
from .transport.telegram import TelegramClient, TelegramReplySink


class RelayBot:
    """
    One relay process: a gate, its dispatcher, and the collaborators around them.
    """

    def __init__(
        self,
        llm: CompletionClient,
        sink=None,
        probe: Optional[EndpointProbe] = None,
        admission: Optional[AdmissionConfig] = None,
        dispatch: Optional[DispatchConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        dispatch = dispatch or DispatchConfig()
        self.llm = llm
        self.sink = sink
        self.probe = probe
        self.telegram: Optional[TelegramClient] = None
        self._clock = clock

        self.dispatcher = Dispatcher(
            llm,
            policy=BackoffPolicy.from_config(dispatch),
            timeout=dispatch.timeout,
            help_text=help_text,
            status_text=self.status_text,
            sleep=sleep,
            clock=clock,
        )
        self.gate = AdmissionGate(
            self.dispatcher,
            config=admission,
            on_outcome=sink.deliver if sink is not None else None,
            clock=clock,
        )
        self.received = 0

    @classmethod
    def from_config(cls, config: AppConfig) -> "RelayBot":
        """Production wiring: llama.cpp endpoint, health probe, Telegram replies."""
        telegram = TelegramClient(config.telegram)
        bot = cls(
            LlamaClient(config.llama),
            sink=TelegramReplySink(telegram, reply_unrecognized=config.telegram.reply_unrecognized),
            probe=EndpointProbe(config.llama),
            admission=config.admission,
            dispatch=config.dispatch,
        )
        bot.telegram = telegram
        return bot

    def status_text(self) -> str:
        endpoint = self.probe.snapshot if self.probe is not None else UNCHECKED
        return health_summary(self.gate.stats(), endpoint)

    # ============= Pipeline =============

    def handle(self, event: InboundEvent) -> AdmissionDecision:
        """Classify one inbound event and submit it. Never blocks."""
        command = build_command(event, received_at=self._clock())
        self.received += 1
        log.bot("Received command",
                chat=command.chat_id,
                seq=command.sequence,
                kind=type(command.kind).__name__)
        return self.gate.submit(command)

    async def consume(self, source: AsyncIterable[InboundEvent]) -> int:
        """Feed every event of `source` into the gate. Returns how many were read."""
        count = 0
        async for event in source:
            self.handle(event)
            count += 1
        return count

    # ============= Lifecycle =============

    async def start(self):
        self.gate.start()
        if self.probe is not None:
            self.probe.start()
        if self.telegram is not None:
            try:
                await self.telegram.set_my_commands()
            except TransportError as e:
                log.warn(f"Could not register bot commands: {e}", component=Component.BOT)
        log.bot("Relay started")

    async def stop(self):
        await self.gate.stop()
        if self.probe is not None:
            await self.probe.stop()
        log.bot("Relay stopped", received=self.received)

    async def close(self):
        """Release network clients."""
        if self.probe is not None:
            await self.probe.close()
        close = getattr(self.llm, "close", None)
        if close is not None:
            await close()
        if self.telegram is not None:
            await self.telegram.close()

    async def run(self, source: AsyncIterable[InboundEvent]):
        """Start, consume `source` until it ends or the task is cancelled, stop."""
        await self.start()
        try:
            await self.consume(source)
        finally:
            await self.stop()
