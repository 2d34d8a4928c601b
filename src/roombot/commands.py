"""Command parsing and help text for user commands."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)


class CommandType(Enum):
    """Types of commands supported."""

    ENGAGEMENT = "engagement"
    BROADCAST = "messageeveryone"
    ASSIGN_ROLE = "assignrole"
    ASSISTANT = "assistant"


# Command documentation for each command type
COMMAND_DOCS = {
    CommandType.ENGAGEMENT: ("!engagement", "Show message counts and the latest message of each member"),
    CommandType.BROADCAST: ("!messageeveryone <message>", "Send a message to every member in a direct message"),
    CommandType.ASSIGN_ROLE: ("!assignrole <person>", "Ask the room for a role for someone, answered by quote-reply"),
    CommandType.ASSISTANT: ("!assistant <request>", "Ask the assistant (try `summarize 3 days` or assigning a role)"),
}


def get_command_help() -> str:
    """Get a formatted list of all available commands."""
    lines = ["Available commands:"]
    for cmd_type in CommandType:
        syntax, description = COMMAND_DOCS[cmd_type]
        lines.append(f"- {syntax} - {description}")
    return "\n".join(lines)


@dataclass
class Command:
    """Parsed command with arguments."""

    type: CommandType
    args: dict[str, Any]
    raw_text: str


class CommandParser:
    """Parser for user commands in messages."""

    ENGAGEMENT_PATTERN = re.compile(r"^!engagement$", re.IGNORECASE)
    BROADCAST_PATTERN = re.compile(r"^!messageeveryone(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
    ASSIGN_ROLE_PATTERN = re.compile(r"^!assignrole(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)
    ASSISTANT_PATTERN = re.compile(r"^!assistant(?:\s+(.*))?$", re.IGNORECASE | re.DOTALL)

    def parse(self, message: str) -> Command | None:
        """Parse a message for commands.

        Returns:
            Parsed command or None if the message is not a known command

        """
        message = message.strip()
        if not message.startswith("!"):
            return None

        if self.ENGAGEMENT_PATTERN.match(message):
            return Command(type=CommandType.ENGAGEMENT, args={}, raw_text=message)

        match = self.BROADCAST_PATTERN.match(message)
        if match:
            return Command(
                type=CommandType.BROADCAST,
                args={"message": (match.group(1) or "").strip()},
                raw_text=message,
            )

        match = self.ASSIGN_ROLE_PATTERN.match(message)
        if match:
            return Command(
                type=CommandType.ASSIGN_ROLE,
                args={"person": (match.group(1) or "").strip()},
                raw_text=message,
            )

        match = self.ASSISTANT_PATTERN.match(message)
        if match:
            return Command(
                type=CommandType.ASSISTANT,
                args={"message": (match.group(1) or "").strip()},
                raw_text=message,
            )

        logger.debug("Unknown command", message=message)
        return None


# Global parser instance
command_parser = CommandParser()
