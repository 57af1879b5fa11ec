"""
Tests for the terminal chat loop and the captcha prompt.
"""

import asyncio
import io
import threading

import pytest
from rich.console import Console

import settings
from cli.captcha_prompt import ConsoleCaptchaSolver
from cli.console_bridge import ConsoleBridge


class ReplyingTaskManager:
    """Answers every task at once with "re: <content>" """

    def __init__(self):
        self.tasks = []
        self.closed = False

    async def send_task(self, task):
        self.tasks.append(task)
        await task.handler(f"re: {task.content}", None)

    async def shutdown(self):
        self.closed = True


class FakeCaptcha:
    def to_file(self, path):
        return path


def scripted_console(lines, seen=None, check=None):
    """Console whose input() returns the given lines, then EOF"""
    console = Console(file=io.StringIO())
    remaining = list(lines)

    def fake_input(prompt=""):
        if check is not None:
            seen.append(check())
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    console.input = fake_input
    return console


@pytest.fixture
def blocking_prompt(monkeypatch):
    release = threading.Event()

    def slow_ask(*args, **kwargs):
        release.wait(5)
        return " late "

    monkeypatch.setattr("cli.captcha_prompt.Prompt.ask", slow_ask)
    yield release
    release.set()


class TestConsoleBridge:
    @pytest.mark.asyncio
    async def test_chat_and_exit(self):
        manager = ReplyingTaskManager()
        console = scripted_console(["hello", "   ", "/quit", "never read"])

        await asyncio.wait_for(ConsoleBridge(manager, 1.0, console=console).run(), 2.0)

        assert [task.content for task in manager.tasks] == ["hello"]
        assert "re: hello" in console.file.getvalue()
        assert manager.closed

    @pytest.mark.asyncio
    async def test_line_empty_after_mention_does_not_hang(self):
        manager = ReplyingTaskManager()
        console = scripted_console(["@@ChatGPT", "@ what now"])

        await asyncio.wait_for(ConsoleBridge(manager, 1.0, user="op", console=console).run(), 2.0)

        assert [(task.user_id, task.content) for task in manager.tasks] == [("group:op", "what now")]
        assert "@op re: what now" in console.file.getvalue()

    def test_auto_accept_passed_to_bridge(self, monkeypatch):
        monkeypatch.setattr(settings, "AUTO_ACCEPT", False)
        manager = ReplyingTaskManager()

        assert ConsoleBridge(manager, 1.0, auto_accept=True).bridge.auto_accept is True
        assert ConsoleBridge(manager, 1.0).bridge.auto_accept is False

    @pytest.mark.asyncio
    async def test_waits_for_abandoned_captcha_prompt(self, blocking_prompt, tmp_path):
        solver = ConsoleCaptchaSolver(Console(file=io.StringIO()), path=str(tmp_path / "captcha.png"))
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(solver(FakeCaptcha()), 0.05)

        seen = []
        console = scripted_console([], seen=seen, check=lambda: solver.prompting)
        run = asyncio.create_task(ConsoleBridge(ReplyingTaskManager(), 1.0, console=console, captcha_solver=solver).run())
        await asyncio.sleep(0.05)
        assert not run.done()

        blocking_prompt.set()
        await asyncio.wait_for(run, 2.0)
        assert seen == [False]


class TestCaptchaSolver:
    @pytest.mark.asyncio
    async def test_answer_is_stripped(self, monkeypatch, tmp_path):
        monkeypatch.setattr("cli.captcha_prompt.Prompt.ask", lambda *args, **kwargs: "  ab12 ")
        solver = ConsoleCaptchaSolver(Console(file=io.StringIO()), path=str(tmp_path / "captcha.png"))

        assert await solver(FakeCaptcha()) == "ab12"
        await solver.wait_idle()
        assert not solver.prompting

    @pytest.mark.asyncio
    async def test_prompt_outlives_deadline(self, blocking_prompt, tmp_path):
        solver = ConsoleCaptchaSolver(Console(file=io.StringIO()), path=str(tmp_path / "captcha.png"))
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(solver(FakeCaptcha()), 0.05)
        assert solver.prompting

        idle = asyncio.create_task(solver.wait_idle())
        await asyncio.sleep(0.05)
        assert not idle.done()

        blocking_prompt.set()
        await asyncio.wait_for(idle, 2.0)
        assert not solver.prompting
