"""Configuration management package for the ChatGPT relay bot"""

from .loader import ConfigLoader, get_config_loader, parse_duration

__all__ = [
    "ConfigLoader",
    "get_config_loader",
    "parse_duration",
]
