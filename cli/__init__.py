"""ChatGPT Relay CLI package"""

from cli.main import main

__all__ = ['main']
