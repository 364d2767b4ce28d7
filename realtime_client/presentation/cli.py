"""
Command-line interface for the realtime socket client.

A small text-mode driver: connect, optionally send one prompt, stream the
assistant's text and transcript deltas to the terminal, then print the
conversation transcript and disconnect.
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from realtime_client.config import settings
from realtime_client.config.logging_config import LoggingManager, get_logger
from realtime_client.domain.conversation.items import ConversationItem
from realtime_client.events.event_interface import (
    CloseEvent,
    ErrorEvent,
    ResponseAudioTranscriptDeltaEvent,
    ResponseDoneEvent,
    ResponseTextDeltaEvent,
)
from realtime_client.services.api_client import RealtimeClient
from realtime_client.utils.error_handling import AppError

logger = get_logger(__name__)


class CliInterface:
    """Prints streamed assistant output and the final transcript."""

    def __init__(self, client: RealtimeClient, color_output: bool = True):
        self.client = client
        self.color_output = color_output and self._supports_color()
        self._streaming = False

        if self.color_output:
            self.RESET = "\033[0m"
            self.BOLD = "\033[1m"
            self.RED = "\033[31m"
            self.GREEN = "\033[32m"
            self.GRAY = "\033[90m"
        else:
            self.RESET = self.BOLD = self.RED = self.GREEN = self.GRAY = ""

        client.on(ResponseTextDeltaEvent, self._handle_delta)
        client.on(ResponseAudioTranscriptDeltaEvent, self._handle_delta)
        client.on(ResponseDoneEvent, self._handle_response_done)
        client.on(ErrorEvent, self._handle_error)
        client.on(CloseEvent, self._handle_close)

    def _handle_delta(self, event) -> None:
        if not self._streaming:
            self._print_safe(f"{self.BOLD}{self.GREEN}assistant:{self.RESET} ", end="")
            self._streaming = True
        self._print_safe(event.delta, end="", flush=True)

    def _handle_response_done(self, event: ResponseDoneEvent) -> None:
        if self._streaming:
            self._print_safe()
            self._streaming = False

    def _handle_error(self, event: ErrorEvent) -> None:
        self._print_safe(f"{self.RED}error: {event.message}{self.RESET}")

    def _handle_close(self, event: CloseEvent) -> None:
        reason = "after an error" if event.error else "normally"
        self._print_safe(f"{self.GRAY}connection closed {reason}{self.RESET}")

    def print_transcript(self, items: List[ConversationItem]) -> None:
        self._print_safe(f"\n{self.BOLD}=== Transcript ({len(items)} items) ==={self.RESET}")
        for item in items:
            self._print_safe(format_item(item))

    def _supports_color(self) -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()

    def _print_safe(self, *args, **kwargs) -> None:
        try:
            print(*args, **kwargs)
        except (IOError, BrokenPipeError) as e:
            logger.debug(f"Failed to print to stdout: {str(e)}")


def format_item(item: ConversationItem) -> str:
    """One-line rendering of a transcript item."""
    if item.type == "function_call":
        return f"[function_call] {item.name}({item.arguments or ''})"
    if item.type == "function_call_output":
        return f"[function_call_output] {item.output or ''}"

    texts = [part.text or part.transcript for part in item.content]
    body = " ".join(text for text in texts if text)
    return f"[{item.role or item.type}] {body}"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Realtime socket client")

    parser.add_argument(
        "prompt",
        nargs="?",
        help="Text message to send before requesting a response"
    )

    parser.add_argument(
        "--model",
        default=None,
        help="Realtime model to use"
    )

    parser.add_argument(
        "--url",
        default=None,
        help="Websocket endpoint of the realtime API"
    )

    parser.add_argument(
        "--voice",
        default=None,
        help="Voice for audio responses"
    )

    parser.add_argument(
        "--text-only",
        action="store_true",
        help="Ask for text responses only"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Seconds to wait for the response"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("LOG_LEVEL", settings.logging.level),
        help="Set logging level"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every frame sent and received"
    )

    return parser.parse_args(argv)


async def run_async_main(args: argparse.Namespace) -> int:
    """
    Run one conversation turn.

    Args:
        args: Parsed command-line arguments

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    session_overrides = {}
    if args.voice:
        session_overrides["voice"] = args.voice
    if args.text_only:
        session_overrides["modalities"] = ["text"]

    try:
        client = RealtimeClient(
            session_config=session_overrides,
            realtime_url=args.url,
            model=args.model,
            auto_reconnect=False,
            debug=args.debug or None,
        )
    except AppError as e:
        e.log(include_traceback=False)
        return 1

    cli = CliInterface(client)

    try:
        if not await client.connect():
            logger.error("Failed to connect to realtime API")
            return 1

        if args.prompt:
            await client.create_conversation_item({
                "type": "message",
                "role": "user",
                "content": [{"type": "input_text", "text": args.prompt}],
            })
            await client.create_response()
            if await client.wait_for_event(ResponseDoneEvent, timeout=args.timeout) is None:
                logger.error("No response received before timeout")
                return 1

        cli.print_transcript(client.get_conversation_items())
        return 0

    except AppError as e:
        e.log()
        return 1
    finally:
        await client.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the command-line client.

    Returns:
        int: Exit code (0 for success, non-zero for error)
    """
    load_dotenv()
    args = parse_arguments(argv)
    LoggingManager.setup_logging(level=args.log_level)

    try:
        return asyncio.run(run_async_main(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
