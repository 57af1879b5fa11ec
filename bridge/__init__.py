"""Bridge between chat platforms and the task dispatcher"""

from .base import PlatformMessage
from .handler import (
    FRIEND_GREETING,
    GROUP_SENDER_ERROR_REPLY,
    RESPONSE_ERROR_REPLY,
    SENDER_ERROR_REPLY,
    MessageBridge,
)

__all__ = [
    "PlatformMessage",
    "MessageBridge",
    "FRIEND_GREETING",
    "SENDER_ERROR_REPLY",
    "GROUP_SENDER_ERROR_REPLY",
    "RESPONSE_ERROR_REPLY",
]
