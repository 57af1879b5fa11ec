"""ChatGPT conversation client

Sends user messages to the ChatGPT web backend and decodes the streamed
reply, keeping the ids needed to continue a conversation.
"""

from .client import ChatGPTClient, Conversation
from .models import ConversationReply, ConversationRequest, parse_conversation_frame
from .stream import ConversationStreamParser, read_final_frame
from .token_manager import TokenManager

__all__ = [
    "ChatGPTClient",
    "Conversation",
    "ConversationReply",
    "ConversationRequest",
    "parse_conversation_frame",
    "ConversationStreamParser",
    "read_final_frame",
    "TokenManager",
]
