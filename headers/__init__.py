"""HTTP headers and browser fingerprint constants"""

from .constants import (
    USER_AGENT,
    SEC_CH_UA,
    PSEUDO_HEADER_ORDER,
    HEADER_PROFILES,
    SENSITIVE_HEADERS,
    build_headers,
)

__all__ = [
    "USER_AGENT",
    "SEC_CH_UA",
    "PSEUDO_HEADER_ORDER",
    "HEADER_PROFILES",
    "SENSITIVE_HEADERS",
    "build_headers",
]
