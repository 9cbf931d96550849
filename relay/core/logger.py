"""
Centralized Logging Module for the relay.

Provides structured terminal logging with:
- Color-coded output by component
- Request tracing with correlation IDs (chat:sequence)
- Outcome trace records

Usage:
    from relay.core.logger import log
    log.gate("Ticket enqueued", chat=chat_id, pos=3)
    log.llm("Completion received", chars=len(text))
"""
import sys
from datetime import datetime
from typing import Optional
from enum import Enum
from dataclasses import dataclass, field
from contextvars import ContextVar

# ANSI Colors
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Components
    GATE = "\033[38;5;51m"     # Cyan
    DISPATCH = "\033[38;5;141m"  # Purple
    LLM = "\033[38;5;208m"     # Orange
    BOT = "\033[38;5;82m"      # Green
    API = "\033[38;5;39m"      # Blue
    HEALTH = "\033[38;5;213m"  # Pink
    ERROR = "\033[38;5;196m"   # Red
    WARN = "\033[38;5;226m"    # Yellow

    DEBUG = "\033[38;5;245m"   # Gray


class Component(Enum):
    GATE = "GATE"
    DISPATCH = "DISP"
    LLM = "LLM"
    BOT = "BOT"
    API = "API"
    HEALTH = "HEALTH"


# Context variable for request tracing
_request_id: ContextVar[str] = ContextVar('request_id', default='----')


@dataclass
class LogConfig:
    """Logging configuration."""
    enabled: bool = True
    show_timestamps: bool = True
    show_request_id: bool = True
    show_debug: bool = False
    max_text_preview: int = 40        # Max chars of user/LLM text in a log line
    component_filter: set = field(default_factory=set)  # Empty = show all


# Global config
config = LogConfig()


class Logger:
    """Centralized logger with component-based coloring."""

    _COLORS = {
        Component.GATE: Colors.GATE,
        Component.DISPATCH: Colors.DISPATCH,
        Component.LLM: Colors.LLM,
        Component.BOT: Colors.BOT,
        Component.API: Colors.API,
        Component.HEALTH: Colors.HEALTH,
    }

    _LEVEL_COLORS = {
        "INFO": Colors.RESET,
        "WARN": Colors.WARN,
        "ERROR": Colors.ERROR,
        "DEBUG": Colors.DEBUG,
    }

    def set_request_id(self, req_id: str):
        """Set correlation ID for the current task."""
        _request_id.set(req_id)

    def _format(
        self,
        component: Component,
        message: str,
        level: str = "INFO",
        **kwargs
    ) -> str:
        """Format log line with colors and metadata."""
        if not config.enabled:
            return ""

        if level == "DEBUG" and not config.show_debug:
            return ""

        if config.component_filter and component.value not in config.component_filter:
            return ""

        parts = []

        if config.show_timestamps:
            ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            parts.append(f"{Colors.DIM}{ts}{Colors.RESET}")

        if config.show_request_id:
            parts.append(f"{Colors.DIM}[{_request_id.get()}]{Colors.RESET}")

        color = self._COLORS.get(component, Colors.RESET)
        parts.append(f"{color}{Colors.BOLD}[{component.value:6}]{Colors.RESET}")

        # Level (only for non-INFO)
        if level != "INFO":
            parts.append(f"{self._LEVEL_COLORS.get(level, Colors.RESET)}{level}{Colors.RESET}")

        parts.append(message)

        if kwargs:
            extras = " ".join(f"{Colors.DIM}{k}={Colors.RESET}{v}" for k, v in kwargs.items())
            parts.append(extras)

        return " ".join(parts)

    def _print(self, component: Component, message: str, level: str = "INFO", **kwargs):
        """Print formatted log line."""
        line = self._format(component, message, level, **kwargs)
        if line:
            print(line, file=sys.stderr, flush=True)

    # === Component-specific methods ===

    def gate(self, message: str, **kwargs):
        """Log admission gate events."""
        self._print(Component.GATE, message, **kwargs)

    def dispatch(self, message: str, **kwargs):
        """Log dispatcher events."""
        self._print(Component.DISPATCH, message, **kwargs)

    def llm(self, message: str, **kwargs):
        """Log LLM endpoint events."""
        self._print(Component.LLM, message, **kwargs)

    def bot(self, message: str, **kwargs):
        """Log messaging transport events."""
        self._print(Component.BOT, message, **kwargs)

    def api(self, message: str, **kwargs):
        """Log HTTP surface events."""
        self._print(Component.API, message, **kwargs)

    def health(self, message: str, **kwargs):
        """Log endpoint health probe events."""
        self._print(Component.HEALTH, message, **kwargs)

    def error(self, message: str, component: Component = Component.BOT, **kwargs):
        """Log errors from any component."""
        self._print(component, message, level="ERROR", **kwargs)

    def warn(self, message: str, component: Component = Component.BOT, **kwargs):
        """Log warnings."""
        self._print(component, message, level="WARN", **kwargs)

    def debug(self, message: str, component: Component = Component.BOT, **kwargs):
        """Log debug info (only when show_debug is on)."""
        self._print(component, message, level="DEBUG", **kwargs)

    # === Text previews ===

    def preview(self, text: str) -> str:
        """Single-line, length-limited preview of user or model text."""
        snippet = text[:config.max_text_preview]
        if len(text) > config.max_text_preview:
            snippet += "..."
        snippet = snippet.replace("\n", "\\n").replace("\r", "")
        return f'"{snippet}"'

    # === Structured events ===

    def outcome(self, chat_id, sequence: int, result: str, reason: Optional[str] = None):
        """Trace record for a terminal outcome. Every outcome passes through here."""
        level = "INFO" if result == "replied" else "WARN"
        fields = {"chat": chat_id, "seq": sequence, "result": result}
        if reason:
            fields["reason"] = reason
        self._print(Component.GATE, "OUTCOME", level=level, **fields)


# Global logger instance
log = Logger()


def configure_logging(
    enabled: bool = True,
    show_debug: bool = False,
    components: Optional[set[str]] = None
):
    """Configure logging options at runtime."""
    config.enabled = enabled
    config.show_debug = show_debug
    if components:
        config.component_filter = components
