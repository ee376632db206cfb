"""Command router for parsing slash commands."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandType(Enum):
    """Available slash command types."""

    HELP = "help"
    DOWNLOAD = "download"


@dataclass
class ParsedCommand:
    """Parsed slash command with its arguments."""

    command_type: CommandType
    arguments: str
    raw_text: str


class CommandRouter:
    """Parse slash commands from mention-stripped message text."""

    COMMAND_PREFIX = "/"

    def __init__(self):
        """Initialize the command router."""
        command_names = "|".join(cmd.value for cmd in CommandType)
        # Prefix match: "/download<url>" is still a download command
        self.command_pattern = re.compile(
            rf"{re.escape(self.COMMAND_PREFIX)}({command_names})(.*)$",
            re.IGNORECASE | re.DOTALL,
        )

    def parse_command(self, text: str) -> Optional[ParsedCommand]:
        """
        Extract a slash command from message text.

        Args:
            text: Message text with mentions already removed.

        Returns:
            ParsedCommand if the text starts with a known command, else None.

        Examples:
            >>> router = CommandRouter()
            >>> cmd = router.parse_command("/download https://instagram.com/p/abc")
            >>> cmd.command_type == CommandType.DOWNLOAD
            True
            >>> cmd.arguments
            'https://instagram.com/p/abc'
        """
        if not text:
            return None

        match = self.command_pattern.match(text.strip())
        if not match:
            return None

        return ParsedCommand(
            command_type=CommandType(match.group(1).lower()),
            arguments=match.group(2).strip(),
            raw_text=text,
        )

    def is_command(self, text: str) -> bool:
        """Quick check if text starts with a slash command."""
        return self.parse_command(text) is not None
