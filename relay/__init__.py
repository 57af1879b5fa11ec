"""
ChatGPT Relay - HTTP surface of the task dispatcher.

Exposes the per-user conversation queues over a small JSON API.
"""
from .server import RelayServer
from .app import create_app

__version__ = "1.0.0"

__all__ = [
    'RelayServer',
    'create_app',
]
