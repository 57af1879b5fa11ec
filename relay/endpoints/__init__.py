"""
Endpoint handlers for the relay server.
"""
from .health import router as health_router
from .messages import router as messages_router

__all__ = [
    'health_router',
    'messages_router',
]
