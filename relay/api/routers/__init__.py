"""
Routers package for the relay API.

- health: /api/health
- webhook: /telegram/webhook
"""

from .health import router as health_router
from .webhook import router as webhook_router

__all__ = [
    "health_router",
    "webhook_router",
]
