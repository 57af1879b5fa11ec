"""Interactive captcha answering for the login flow

The login runs inside the task deadline. When the deadline passes while
the operator is still typing, the prompt thread keeps reading stdin, so
the console bridge calls wait_idle() before it reads its next line.
"""

import asyncio
import logging
from typing import Optional

from rich.console import Console
from rich.prompt import Prompt

from chatgpt_auth import Captcha
from settings import CAPTCHA_FILE

logger = logging.getLogger(__name__)


class ConsoleCaptchaSolver:
    """Writes the captcha image to disk and asks the operator for the answer"""

    def __init__(self, console: Optional[Console] = None, path: str = CAPTCHA_FILE):
        self.console = console or Console()
        self.path = path
        self._prompt: Optional[asyncio.Future] = None

    @property
    def prompting(self) -> bool:
        return self._prompt is not None and not self._prompt.done()

    async def __call__(self, captcha: Captcha) -> str:
        written = captcha.to_file(self.path)
        logger.info(f"Captcha written to {written}")
        self.console.print(f"[yellow]Login requires a captcha, open [bold]{written}[/bold][/yellow]")
        # Prompt.ask blocks on stdin and its thread cannot be cancelled
        self._prompt = asyncio.ensure_future(asyncio.to_thread(Prompt.ask, "Captcha", console=self.console))
        answer = await asyncio.shield(self._prompt)
        return answer.strip()

    async def wait_idle(self) -> None:
        """Wait until no captcha prompt is reading stdin"""
        prompt = self._prompt
        if prompt is None:
            return
        if not prompt.done():
            self.console.print("[yellow]The captcha answer came too late, press Enter to continue[/yellow]")
            await asyncio.wait({prompt})
        self._prompt = None
        if not prompt.cancelled() and prompt.exception() is not None:
            logger.warning(f"Captcha prompt failed: {prompt.exception()}")
