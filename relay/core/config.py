"""
Configuration settings for the relay.

All values are read once at startup (environment variables, see from_env())
and never mutated afterwards.
"""
import os
from dataclasses import dataclass, field
from typing import Optional


FAIRNESS_POLICIES = ("fifo", "round_robin")
TRANSPORT_MODES = ("polling", "webhook")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AdmissionConfig:
    """Admission gate configuration."""
    capacity: int = 8           # N: max pending tickets
    max_wait: float = 30.0      # seconds a ticket may wait before it is stale
    fairness: str = "fifo"      # "fifo" or "round_robin"
    dedupe_window: int = 1024   # recently seen (chat_id, sequence) keys

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")
        if self.max_wait <= 0:
            raise ValueError(f"max_wait must be > 0, got {self.max_wait}")
        if self.fairness not in FAIRNESS_POLICIES:
            raise ValueError(f"fairness must be one of {FAIRNESS_POLICIES}, got {self.fairness!r}")
        if self.dedupe_window < 0:
            raise ValueError(f"dedupe_window must be >= 0, got {self.dedupe_window}")

    @classmethod
    def from_env(cls) -> "AdmissionConfig":
        return cls(
            capacity=_env_int("RELAY_QUEUE_CAPACITY", 8),
            max_wait=_env_float("RELAY_MAX_WAIT", 30.0),
            fairness=os.getenv("RELAY_FAIRNESS", "fifo"),
            dedupe_window=_env_int("RELAY_DEDUPE_WINDOW", 1024),
        )


@dataclass
class DispatchConfig:
    """Per-call timeout and retry policy for the LLM endpoint."""
    timeout: float = 60.0           # T: seconds per attempt
    retries: int = 3                # R: retries after the first attempt
    backoff_base: float = 1.0       # d
    backoff_multiplier: float = 2.0  # m
    jitter: float = 0.0             # extra random fraction, only ever lengthens a delay

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        if self.backoff_base < 0 or self.backoff_multiplier < 1:
            raise ValueError("backoff_base must be >= 0 and backoff_multiplier >= 1")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")

    @classmethod
    def from_env(cls) -> "DispatchConfig":
        return cls(
            timeout=_env_float("RELAY_LLM_TIMEOUT", 60.0),
            retries=_env_int("RELAY_LLM_RETRIES", 3),
            backoff_base=_env_float("RELAY_BACKOFF_BASE", 1.0),
            backoff_multiplier=_env_float("RELAY_BACKOFF_MULTIPLIER", 2.0),
            jitter=_env_float("RELAY_BACKOFF_JITTER", 0.0),
        )


@dataclass
class LlamaConfig:
    """llama.cpp server configuration (OpenAI-compatible API)."""
    base_url: str = "http://192.168.2.56:8080"
    # Model name is ignored by llama.cpp, it serves whatever it loaded
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.4
    max_tokens: Optional[int] = None
    api_key: str = "no-key"
    health_interval: float = 30.0   # seconds between /health probes

    @classmethod
    def from_env(cls) -> "LlamaConfig":
        max_tokens = os.getenv("RELAY_LLAMA_MAX_TOKENS")
        return cls(
            base_url=os.getenv("RELAY_LLAMA_URL", "http://192.168.2.56:8080").rstrip("/"),
            model=os.getenv("RELAY_LLAMA_MODEL", "gpt-3.5-turbo"),
            temperature=_env_float("RELAY_LLAMA_TEMPERATURE", 0.4),
            max_tokens=int(max_tokens) if max_tokens else None,
            api_key=os.getenv("RELAY_LLAMA_API_KEY", "no-key"),
            health_interval=_env_float("RELAY_HEALTH_INTERVAL", 30.0),
        )


@dataclass
class TelegramConfig:
    """Telegram Bot API transport configuration."""
    token: str = ""
    api_url: str = "https://api.telegram.org"
    mode: str = "polling"           # "polling" or "webhook"
    poll_timeout: int = 30          # long-poll seconds
    webhook_url: str = ""           # public URL registered with setWebhook, empty to skip
    webhook_secret: str = ""
    reply_unrecognized: bool = True

    def __post_init__(self):
        if self.mode not in TRANSPORT_MODES:
            raise ValueError(f"mode must be one of {TRANSPORT_MODES}, got {self.mode!r}")

    @classmethod
    def from_env(cls) -> "TelegramConfig":
        return cls(
            token=os.getenv("RELAY_TELEGRAM_TOKEN") or os.getenv("TELOXIDE_TOKEN", ""),
            api_url=os.getenv("RELAY_TELEGRAM_API", "https://api.telegram.org").rstrip("/"),
            mode=os.getenv("RELAY_TRANSPORT", "polling"),
            poll_timeout=_env_int("RELAY_POLL_TIMEOUT", 30),
            webhook_url=os.getenv("RELAY_WEBHOOK_URL", ""),
            webhook_secret=os.getenv("RELAY_WEBHOOK_SECRET", ""),
            reply_unrecognized=_env_bool("RELAY_REPLY_UNRECOGNIZED", True),
        )


@dataclass
class AppConfig:
    """Main application configuration."""
    # Webhook / status server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    # Sub-configs
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    llama: LlamaConfig = field(default_factory=LlamaConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=_env_int("RELAY_PORT", 8000),
            debug=_env_bool("RELAY_DEBUG", False),
            admission=AdmissionConfig.from_env(),
            dispatch=DispatchConfig.from_env(),
            llama=LlamaConfig.from_env(),
            telegram=TelegramConfig.from_env(),
        )
