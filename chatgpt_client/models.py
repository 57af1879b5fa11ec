"""Request and response shapes of the conversation backend"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import MalformedResponse, StreamParseFailure, UpstreamError
from settings import CHATGPT_MODEL


@dataclass
class Content:
    content_type: str = "text"
    parts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.content_type:
            data["content_type"] = self.content_type
        if self.parts:
            data["parts"] = list(self.parts)
        return data


@dataclass
class Message:
    id: str
    role: str = "user"
    content: Content = field(default_factory=Content)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.id:
            data["id"] = self.id
        if self.role:
            data["role"] = self.role
        content = self.content.to_dict()
        if content:
            data["content"] = content
        return data


@dataclass
class ConversationRequest:
    """Body of POST /backend-api/conversation

    Empty fields are left out of the serialized body, so the first message
    of a conversation is sent without a conversation_id.
    """
    messages: List[Message]
    parent_message_id: str
    conversation_id: str = ""
    action: str = "next"
    model: str = CHATGPT_MODEL

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.action:
            data["action"] = self.action
        if self.messages:
            data["messages"] = [message.to_dict() for message in self.messages]
        if self.conversation_id:
            data["conversation_id"] = self.conversation_id
        if self.parent_message_id:
            data["parent_message_id"] = self.parent_message_id
        if self.model:
            data["model"] = self.model
        return data

    @classmethod
    def user_text(
        cls,
        text: str,
        message_id: str,
        parent_message_id: str,
        conversation_id: str = "",
    ) -> "ConversationRequest":
        """Build the request for a single user text message"""
        message = Message(id=message_id, content=Content(parts=[text]))
        return cls(
            messages=[message],
            parent_message_id=parent_message_id,
            conversation_id=conversation_id,
        )


@dataclass
class ConversationReply:
    """Decoded final frame of a conversation stream"""
    text: str
    message_id: str
    conversation_id: str


def parse_conversation_frame(frame: Optional[str]) -> ConversationReply:
    """Decode the last data frame of a conversation stream

    Args:
        frame: Raw JSON payload of the final frame

    Returns:
        The reply text with the ids needed to continue the conversation

    Raises:
        StreamParseFailure: No frame, or the frame is not a JSON object
        MalformedResponse: The frame carries no reply text
        UpstreamError: The frame carries an error message
    """
    if frame is None:
        raise StreamParseFailure("conversation stream ended without a data frame")

    try:
        data = json.loads(frame)
    except json.JSONDecodeError as e:
        raise StreamParseFailure(f"invalid conversation frame: {e}") from e

    if not isinstance(data, dict):
        raise StreamParseFailure("invalid conversation frame: not a JSON object")

    error = data.get("error")
    if error:
        raise UpstreamError(200, error if isinstance(error, str) else json.dumps(error))

    message = data.get("message") or {}
    content = message.get("content") or {} if isinstance(message, dict) else {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not parts:
        raise MalformedResponse("conversation", "reply has no content parts")

    return ConversationReply(
        text=str(parts[0]),
        message_id=message.get("id") or "",
        conversation_id=data.get("conversation_id") or "",
    )
