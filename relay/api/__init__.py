"""
Relay HTTP surface: status endpoint and Telegram webhook ingress.
"""
from .app import create_app

__all__ = ["create_app"]
