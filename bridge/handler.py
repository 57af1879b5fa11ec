"""Turns platform messages into dispatcher tasks"""

import logging
from typing import Optional

import settings
from dispatcher import Task, TaskManager

from .base import PlatformMessage

logger = logging.getLogger(__name__)

FRIEND_GREETING = "I'm a ChatGPT bot~"
SENDER_ERROR_REPLY = "[ERROR] Failed to get message sender"
GROUP_SENDER_ERROR_REPLY = "[ERROR] Failed to get group sender"
RESPONSE_ERROR_REPLY = "[ERROR] Failed to get ChatGPT response"


class MessageBridge:
    """Relays chat messages to ChatGPT and the replies back"""

    def __init__(self, task_manager: TaskManager, task_timeout: Optional[float], auto_accept: Optional[bool] = None):
        """Initialize bridge

        Args:
            task_manager: Dispatcher the tasks are sent to
            task_timeout: Deadline in seconds for each reply
            auto_accept: Accept friend requests automatically, defaults to
                the AUTO_ACCEPT setting
        """
        self.task_manager = task_manager
        self.task_timeout = task_timeout
        self.auto_accept = settings.AUTO_ACCEPT if auto_accept is None else auto_accept

    async def _reply(self, msg: PlatformMessage, text: str) -> None:
        try:
            await msg.reply_text(text)
        except Exception as e:
            logger.warning(f"Failed to reply: {e}")

    async def handle_message(self, msg: PlatformMessage) -> bool:
        """Handle one incoming message

        Returns once the task is queued; the reply is sent by the task
        handler when the worker gets to it.

        Returns:
            True if a task was queued for the message
        """
        if msg.is_friend_request():
            if self.auto_accept:
                try:
                    await msg.accept_friend(FRIEND_GREETING)
                except Exception as e:
                    logger.warning(f"Failed to accept friend request: {e}")
            return False

        if msg.is_sent_by_self() or (msg.is_group() and not msg.is_mention()) or not msg.is_text():
            return False

        logger.debug(f"Receive msg: {msg.content}")

        content = msg.content.strip()
        prefix = ""

        try:
            sender_id = await msg.sender_id()
        except Exception as e:
            logger.warning(f"Failed to get message sender: {e}")
            await self._reply(msg, SENDER_ERROR_REPLY)
            return False

        if msg.is_group():
            try:
                nickname = await msg.group_sender_nickname()
                own_nickname = await msg.self_nickname()
            except Exception as e:
                logger.warning(f"Failed to get group sender: {e}")
                await self._reply(msg, GROUP_SENDER_ERROR_REPLY)
                return False
            prefix = f"@{nickname} "
            content = msg.content.replace(f"@{own_nickname}", "").strip()

        if not content:
            return False

        async def on_reply(reply: str, error: Optional[BaseException]) -> None:
            if error is not None:
                logger.warning(f"Failed to get ChatGPT response: {error}")
                await self._reply(msg, RESPONSE_ERROR_REPLY)
            else:
                logger.debug(f"ChatGPT response: {reply}")
                await self._reply(msg, prefix + reply)

        await self.task_manager.send_task(Task(sender_id, content, self.task_timeout, on_reply))
        return True
