"""llama-relay: Telegram commands relayed to a single llama.cpp endpoint."""

__version__ = "0.1.0"
