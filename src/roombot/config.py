"""Pydantic models for configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import yaml
from pydantic import BaseModel, Field

from .constants import CONFIG_PATH
from .logging_config import get_logger

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)

DEFAULT_ASSISTANT_INSTRUCTIONS = """\
You are an assistant bot that manages a Matrix chat room. Based on the message you receive, \
you will either assign roles or send a reply to the room.

Be concise and witty.

###Role Management###
You will be provided with a list of room members and their user IDs at the start of each conversation.
When assigning roles, make sure to use the exact display name as provided in the room members list.
If a requested name doesn't match any room member exactly, try to find the closest match and confirm with the user.
If the user asks for a role that is already assigned, let them know."""


class ModerationConfig(BaseModel):
    """Content moderation settings."""

    disallowed_terms: list[str] = Field(
        default_factory=lambda: ["ur mom gay", "aha lol"],
        description="Substrings that get a message redacted (matched case-insensitively)",
    )
    redaction_reason: str = Field(
        default="Message contained inappropriate content",
        description="Reason attached to the redaction event",
    )


class AssistantConfig(BaseModel):
    """Configuration for the OpenAI assistant."""

    name: str = Field(default="Matrix Tool Assistant", description="Assistant display name")
    model: str = Field(default="gpt-4o-mini", description="Model used by the assistant")
    instructions: str = Field(default=DEFAULT_ASSISTANT_INSTRUCTIONS, description="Assistant instructions")
    assistant_id: str | None = Field(default=None, description="Reuse an existing assistant instead of creating one")
    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between the first run status polls")
    poll_backoff: float = Field(default=1.0, ge=1.0, description="Multiplier applied to the interval after each poll")
    max_poll_interval: float = Field(default=10.0, gt=0, description="Upper bound for the poll interval")
    run_timeout: float = Field(default=300.0, gt=0, description="Deadline in seconds for a single run")


class HistoryConfig(BaseModel):
    """Room history fetching settings."""

    limit: int = Field(default=10000, gt=0, description="Maximum number of events fetched per request")
    page_size: int = Field(default=100, gt=0, description="Events requested per /messages page")
    excerpt_length: int = Field(default=50, gt=0, description="Characters kept of a message in engagement stats")


class StorageConfig(BaseModel):
    """Pseudo-state storage settings."""

    backend: Literal["yaml", "memory"] = Field(default="yaml", description="Pseudo-state backend")
    filename: str = Field(default="pseudo_state.yaml", description="File name under the storage path")


class Config(BaseModel):
    """Complete configuration from YAML."""

    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    welcome_emojis: list[str] = Field(
        default_factory=lambda: ["👋", "🎉", "✨", "🌟", "🎊", "🙌", "💫", "🤗", "🌈", "💝"],
        min_length=1,
        description="Emojis picked at random for welcome messages",
    )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> Config:
        """Create a Config instance from YAML data.

        A missing file is not an error: the defaults are used instead.
        """
        path = config_path or CONFIG_PATH

        if not path.exists():
            logger.info("No configuration file found, using defaults", path=str(path))
            return cls()

        with path.open() as f:
            data = yaml.safe_load(f) or {}

        config = cls.model_validate(data)
        logger.info("Loaded configuration", path=str(path))
        return config
