"""Welcome message for members joining a room."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from .commands import get_command_help
from .matrix.client import send_message

if TYPE_CHECKING:
    from .runtime import BotContext


def build_welcome_message(user_id: str, emojis: list[str]) -> str:
    """Greet a user and list the commands."""
    emoji = random.choice(emojis)  # noqa: S311
    return f"Welcome {user_id}! {emoji}\n\n{get_command_help()}"


async def greet_member(ctx: BotContext, room_id: str, user_id: str) -> str | None:
    """Send the welcome message for a newly joined member."""
    return await send_message(ctx.client, room_id, build_welcome_message(user_id, ctx.config.welcome_emojis))
