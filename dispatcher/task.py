"""Unit of work handed to the dispatcher"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

RESET_COMMAND = "!reset"
RESET_REPLY = "Reset conversation done."

# Called exactly once with (reply, None) or ("", error); may be a coroutine function
TaskHandler = Callable[[str, Optional[BaseException]], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Task:
    """A message from one user waiting for a reply

    Attributes:
        user_id: Conversation owner; tasks of one user run in order
        content: Message text, or RESET_COMMAND
        timeout: Deadline in seconds for the reply (None waits forever)
        handler: Receives the reply or the error
    """
    user_id: str
    content: str
    timeout: Optional[float]
    handler: TaskHandler

    @property
    def is_reset(self) -> bool:
        return self.content == RESET_COMMAND
