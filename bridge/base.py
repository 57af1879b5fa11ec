"""
Base message interface for chat platforms.
Defines what the bridge needs to know about an incoming message.
"""
from abc import ABC, abstractmethod


class PlatformMessage(ABC):
    """Abstract incoming message of a chat platform

    Lookups that go to the platform (sender, group member, replies) are
    async and may raise; the bridge turns their failures into replies.
    """

    @property
    @abstractmethod
    def content(self) -> str:
        """Raw text of the message"""

    @abstractmethod
    def is_friend_request(self) -> bool:
        pass

    @abstractmethod
    def is_sent_by_self(self) -> bool:
        pass

    @abstractmethod
    def is_group(self) -> bool:
        pass

    @abstractmethod
    def is_mention(self) -> bool:
        """Whether the bot is @-mentioned (only meaningful in groups)"""

    @abstractmethod
    def is_text(self) -> bool:
        pass

    @abstractmethod
    async def accept_friend(self, greeting: str) -> None:
        """Accept the friend request with a greeting message"""

    @abstractmethod
    async def sender_id(self) -> str:
        """Id of the chat the message came from

        For group messages this is the group, so a group shares one
        conversation.
        """

    @abstractmethod
    async def group_sender_nickname(self) -> str:
        """Nickname of the group member who wrote the message"""

    @abstractmethod
    async def self_nickname(self) -> str:
        """Nickname of the bot account"""

    @abstractmethod
    async def reply_text(self, text: str) -> None:
        """Send a text reply to the chat the message came from"""
