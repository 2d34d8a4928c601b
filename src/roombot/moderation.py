"""Redaction of messages containing disallowed terms."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .logging_config import get_logger
from .matrix.client import redact_event, send_message

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .routing import IncomingMessage
    from .runtime import BotContext

logger = get_logger(__name__)


def contains_disallowed_content(message: str, terms: Iterable[str]) -> bool:
    """Check whether any term occurs in the message, ignoring case."""
    lower_message = message.lower()
    return any(term.lower() in lower_message for term in terms if term)


async def moderate_message(ctx: BotContext, message: IncomingMessage) -> None:
    """Redact the message and tell the room who sent it."""
    try:
        await redact_event(ctx.client, message.room_id, message.event_id, ctx.config.moderation.redaction_reason)
    except Exception:
        logger.exception("Failed to redact message", room_id=message.room_id, event_id=message.event_id)
        await send_message(ctx.client, message.room_id, "Failed to redact a message containing inappropriate content.")
        return

    await send_message(
        ctx.client,
        message.room_id,
        f"A message from {message.sender} was redacted due to inappropriate content.",
    )
