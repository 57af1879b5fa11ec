"""CLI entry point and argument parsing"""

import sys
import asyncio
import argparse
from typing import Optional

import httpx
from rich.console import Console

import settings
from chatgpt_client import ChatGPTClient, TokenManager
from cli.captcha_prompt import ConsoleCaptchaSolver
from cli.console_bridge import ConsoleBridge
from cli.logging_setup import setup_debug_logging, setup_logging
from dispatcher import TaskManager
from errors import ChatRelayError


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ChatGPT Relay CLI")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--bind", "-b", default=None, help="Override bind address (default: from config)")
    parser.add_argument("--user", "-u", default="console", help="User id of the console conversation")
    parser.add_argument(
        "--stream-trace",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable raw stream tracing log capture (implies --stream-trace for --debug unless explicitly disabled)"
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="console",
        choices=["console", "serve", "login"],
        help="console: chat in the terminal (default); serve: run the HTTP relay; login: test the login"
    )
    return parser


def has_credentials() -> bool:
    return bool(settings.SESSION_TOKEN or (settings.CHATGPT_EMAIL and settings.CHATGPT_PASSWORD))


def make_task_manager(solver: Optional[ConsoleCaptchaSolver] = None) -> TaskManager:
    solver = solver or ConsoleCaptchaSolver(console, settings.CAPTCHA_FILE)

    def client_factory():
        return ChatGPTClient(
            session_token=settings.SESSION_TOKEN,
            email=settings.CHATGPT_EMAIL,
            password=settings.CHATGPT_PASSWORD,
            cf_clearance=settings.CF_CLEARANCE,
            user_agent=settings.USER_AGENT,
            proxy=settings.RELAY_PROXY,
            captcha_solver=solver,
        )

    return TaskManager(session_token=settings.SESSION_TOKEN, client_factory=client_factory)


async def run_login() -> None:
    async with httpx.AsyncClient() as http_client:
        manager = TokenManager(
            http_client,
            cf_clearance=settings.CF_CLEARANCE,
            user_agent=settings.USER_AGENT,
            email=settings.CHATGPT_EMAIL,
            password=settings.CHATGPT_PASSWORD,
            proxy=settings.RELAY_PROXY,
            captcha_solver=ConsoleCaptchaSolver(console, settings.CAPTCHA_FILE),
        )
        credentials = await manager.refresh_with_login()
    console.print(f"[green]✓ Logged in[/green], access token expires at {credentials.expires_at.isoformat()}")


def main():
    """Entry point for the CLI"""
    args = build_parser().parse_args()

    if args.debug:
        setup_debug_logging()
        console.print("[yellow]Debug mode enabled - verbose logging will be written to relay_debug.log[/yellow]")
    else:
        setup_logging(settings.LOG_LEVEL)

    # Determine stream tracing preference (config default -> CLI overrides)
    stream_trace_setting = settings.STREAM_TRACE_ENABLED
    if args.stream_trace is None:
        if args.debug:
            stream_trace_setting = True
    else:
        stream_trace_setting = args.stream_trace
    settings.STREAM_TRACE_ENABLED = stream_trace_setting
    if stream_trace_setting:
        console.print("[yellow]Stream tracing enabled - raw conversation frames will be logged to disk[/yellow]")

    if args.command == "login":
        if not (settings.CHATGPT_EMAIL and settings.CHATGPT_PASSWORD):
            console.print("[red]ERROR:[/red] CHATGPT_EMAIL and CHATGPT_PASSWORD are required for login")
            sys.exit(1)
    elif not has_credentials():
        console.print("[red]ERROR:[/red] SESSION_TOKEN (or CHATGPT_EMAIL and CHATGPT_PASSWORD) is required")
        sys.exit(1)

    try:
        if args.command == "login":
            asyncio.run(run_login())
        elif args.command == "serve":
            from relay import RelayServer
            RelayServer(task_manager=make_task_manager(), bind_address=args.bind).run()
        else:
            solver = ConsoleCaptchaSolver(console, settings.CAPTCHA_FILE)
            bridge = ConsoleBridge(
                make_task_manager(solver),
                settings.TASK_TIMEOUT,
                user=args.user,
                console=console,
                auto_accept=settings.AUTO_ACCEPT,
                captcha_solver=solver,
            )
            asyncio.run(bridge.run())
        console.print("Goodbye!")

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        console.print("Goodbye!")
    except ChatRelayError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
