"""Terminal chat platform

Lets an operator talk to ChatGPT through the same bridge a chat platform
would use. Lines starting with "@" are sent as group messages mentioning
the bot, which exercises the group reply prefix.
"""

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from bridge import MessageBridge, PlatformMessage
from cli.captcha_prompt import ConsoleCaptchaSolver
from dispatcher import TaskManager

logger = logging.getLogger(__name__)

BOT_NICKNAME = "ChatGPT"
EXIT_COMMANDS = ("/quit", "/exit")


class ConsoleMessage(PlatformMessage):
    """A line typed into the terminal"""

    def __init__(self, text: str, user: str, console: Console, group: bool = False):
        self._text = text
        self.user = user
        self.console = console
        self.group = group
        self.replied = asyncio.Event()

    @property
    def content(self) -> str:
        return self._text

    def is_friend_request(self) -> bool:
        return False

    def is_sent_by_self(self) -> bool:
        return False

    def is_group(self) -> bool:
        return self.group

    def is_mention(self) -> bool:
        return f"@{BOT_NICKNAME}" in self._text

    def is_text(self) -> bool:
        return True

    async def accept_friend(self, greeting: str) -> None:
        self.console.print(greeting)

    async def sender_id(self) -> str:
        return f"group:{self.user}" if self.group else self.user

    async def group_sender_nickname(self) -> str:
        return self.user

    async def self_nickname(self) -> str:
        return BOT_NICKNAME

    async def reply_text(self, text: str) -> None:
        self.console.print(Panel(text, title=BOT_NICKNAME, title_align="left", border_style="cyan"))
        self.replied.set()


class ConsoleBridge:
    """Read-eval-print loop over a MessageBridge"""

    def __init__(
        self,
        task_manager: TaskManager,
        task_timeout: Optional[float],
        user: str = "console",
        console: Optional[Console] = None,
        auto_accept: Optional[bool] = None,
        captcha_solver: Optional[ConsoleCaptchaSolver] = None,
    ):
        self.console = console or Console()
        self.user = user
        self.task_manager = task_manager
        self.captcha_solver = captcha_solver
        self.bridge = MessageBridge(task_manager, task_timeout, auto_accept=auto_accept)

    def _to_message(self, line: str) -> ConsoleMessage:
        if line.startswith("@"):
            return ConsoleMessage(f"@{BOT_NICKNAME} {line[1:].strip()}", self.user, self.console, group=True)
        return ConsoleMessage(line, self.user, self.console)

    async def run(self) -> None:
        self.console.print(
            f"[bold]Chatting as {self.user}[/bold] - "
            f"[dim]!reset starts over, {' / '.join(EXIT_COMMANDS)} leaves[/dim]"
        )
        try:
            while True:
                if self.captcha_solver is not None:
                    await self.captcha_solver.wait_idle()
                try:
                    line = await asyncio.to_thread(self.console.input, "[green]you>[/green] ")
                except EOFError:
                    break
                line = line.strip()
                if not line.lstrip("@").strip():
                    continue
                if line in EXIT_COMMANDS:
                    break

                msg = self._to_message(line)
                # Every queued message is answered, even if only with an error
                if await self.bridge.handle_message(msg):
                    await msg.replied.wait()
        finally:
            await self.task_manager.shutdown()
