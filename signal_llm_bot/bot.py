"""Main bot logic: dispatch of inbound events and the polling loop."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from .command_router import CommandRouter, CommandType, ParsedCommand
from .config import Config
from .errors import BotError, LLMError
from .events import event_hash
from .llm_handler import LLMBackend, LLMHandler
from .message import Message, extract, normalize_phone, target_label
from .services import Deduper, InstagramDownloader, MediaDownloader, extract_instagram_url
from .signal_client import SignalClient

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred while processing your request. Please try again later."

HELP_TEXT = """🤖 *Signal Bot Commands*

*Available Commands:*
• /download - Download an Instagram video
  • Reply to a message containing an Instagram URL with '@bot /download'
  • Or use '@bot /download <instagram_url>'

• /help - Show this help message

*General Usage:*
• Mention @bot in any message to chat with the AI
• The bot responds to your questions and conversations
• When you reply to a message, the bot includes that context in its response"""

DOWNLOAD_USAGE = (
    "To download an Instagram video:\n"
    "• Reply to a message containing an Instagram URL with '@bot /download'\n"
    "• Or use '@bot /download <instagram_url>'"
)
DOWNLOAD_STARTED = "Downloading Instagram video... This may take a moment."
DOWNLOAD_FAILED = "Failed to download Instagram video. Please check the URL and try again."


class Bot:
    """Polls the gateway and answers messages that mention the bot."""

    def __init__(
        self,
        config: Config,
        signal_client: Optional[SignalClient] = None,
        llm: Optional[LLMBackend] = None,
        deduper: Optional[Deduper] = None,
        downloader: Optional[MediaDownloader] = None,
    ) -> None:
        self.config = config
        self.bot_number = config.signal.number
        self.bot_uuid = config.signal.uuid

        self.signal = signal_client if signal_client is not None else SignalClient(config.signal)
        self.llm = llm if llm is not None else LLMHandler(config.llm)
        self.deduper = deduper if deduper is not None else Deduper()
        self.downloader = downloader if downloader is not None else InstagramDownloader(config.bot.download_dir)

        self.command_router = CommandRouter()

    async def _resolve_target(self, message: Message) -> Optional[str]:
        """Pick the reply destination: group, then number, then uuid."""
        if message.group_id:
            return await self.signal.get_group_public_id(message.group_id)
        if message.source_number:
            return message.source_number
        if message.source_uuid:
            return message.source_uuid
        return None

    async def _send_response(self, message: Message, text: str) -> None:
        """Send a text reply to wherever the message came from."""
        try:
            target = await self._resolve_target(message)
            if target is None:
                logger.warning("No reply target for event %s", message.event_hash)
                return
            await self.signal.send_message(target, text)
        except BotError as e:
            logger.error("Error sending message to %s: %s", target_label(message), e)

    async def _send_file(self, message: Message, path: Path, caption: str = "") -> None:
        """Send a file to wherever the message came from."""
        try:
            target = await self._resolve_target(message)
            if target is None:
                logger.warning("No reply target for event %s", message.event_hash)
                return
            await self.signal.send_file(target, path, caption)
        except BotError as e:
            logger.error("Error sending file to %s: %s", target_label(message), e)

    async def _handle_help(self, message: Message) -> None:
        await self._send_response(message, HELP_TEXT)

    async def _handle_download(self, message: Message, command: ParsedCommand) -> None:
        """
        Download media referenced by the message and send it back.

        The URL is taken from the command arguments, then the raw text, then
        the quoted message, whichever yields one first.
        """
        candidates = [command.arguments, message.raw_text]
        if message.quote is not None:
            candidates.append(message.quote.text)

        url = next((found for found in map(extract_instagram_url, candidates) if found), "")
        if not url:
            await self._send_response(message, DOWNLOAD_USAGE)
            return

        logger.info("Processing download request for: %s", url)
        await self._send_response(message, DOWNLOAD_STARTED)

        result = await self.downloader.download(url)
        if not result.success or result.file_path is None:
            logger.warning("Download failed for %s: %s", url, result.error)
            await self._send_response(message, DOWNLOAD_FAILED)
            return

        try:
            await self._send_file(message, result.file_path)
        finally:
            result.file_path.unlink(missing_ok=True)

    def _build_prompt(self, message: Message) -> str:
        user_message = message.clean_text or "Please provide a helpful response."
        if message.quote is None:
            return user_message

        logger.debug("Including reply context from %s: %r", message.quote.author, message.quote.text)
        return f'Context (replying to): "{message.quote.text}"\n\nUser message: {user_message}'

    async def _handle_chat(self, message: Message) -> None:
        try:
            answer = await self.llm.ask(self._build_prompt(message))
        except LLMError as e:
            logger.error("Error generating LLM response: %s", e)
            await self._send_response(message, GENERIC_ERROR)
            return

        await self._send_response(message, answer)

    async def handle_event(self, event: Any) -> bool:
        """Process a single raw event.

        Args:
            event: Raw envelope mapping as returned by the gateway.

        Returns:
            True if the event addressed the bot and was dispatched.
        """
        digest = event_hash(event)
        if self.deduper.seen(digest):
            logger.debug("Skipping duplicate event (hash=%s)", digest)
            return False

        message = extract(event, self.bot_number, self.bot_uuid, event_hash=digest)

        if (
            self.config.bot.ignore_self
            and message.source_number
            and normalize_phone(message.source_number) == normalize_phone(self.bot_number)
        ):
            return False

        if not message.bot_mentioned:
            return False

        logger.info("Mentioned in %s -> %r", target_label(message), message.clean_text)

        command = self.command_router.parse_command(message.clean_text)
        if command is None:
            await self._handle_chat(message)
        elif command.command_type == CommandType.HELP:
            await self._handle_help(message)
        elif command.command_type == CommandType.DOWNLOAD:
            await self._handle_download(message, command)

        return True

    async def run_once(self) -> int:
        """Run a single polling cycle.

        Returns:
            Number of events that were dispatched.
        """
        try:
            events = await self.signal.receive_events()
        except BotError as e:
            logger.error("Error receiving events: %s", e)
            return 0

        processed = 0
        for event in events:
            try:
                if await self.handle_event(event):
                    processed += 1
            except Exception as e:
                logger.error("Error handling event: %s", e, exc_info=True)

        return processed

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Poll until ``stop_event`` is set.

        The stop request is observed between ticks; an event being handled
        when it arrives is finished first.
        """
        stop_event = stop_event or asyncio.Event()

        logger.info("Starting bot for %s", self.bot_number)
        logger.info("Poll interval: %.1f seconds", self.config.bot.poll_interval)

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.config.bot.poll_interval)
            except asyncio.TimeoutError:
                await self.run_once()

        logger.info("Stop requested, polling loop exiting")

    async def close(self) -> None:
        """Stop the dedup sweep and release HTTP clients."""
        self.deduper.stop()
        await self.signal.close()
        close_downloader = getattr(self.downloader, "close", None)
        if close_downloader is not None:
            await close_downloader()
