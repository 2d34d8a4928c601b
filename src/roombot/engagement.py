"""Per-member engagement statistics computed from recent room history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .logging_config import get_logger
from .matrix.client import fetch_room_history, send_message
from .matrix.events import format_timestamp

if TYPE_CHECKING:
    from .routing import IncomingMessage
    from .runtime import BotContext

logger = get_logger(__name__)

ELLIPSIS = "..."


@dataclass
class EngagementRecord:
    """Message count and latest message of one member."""

    user_id: str
    message_count: int
    last_content: str
    last_timestamp: int


def compute_engagement(
    messages: list[dict[str, Any]],
    exclude_senders: set[str] | None = None,
    exclude_event_ids: set[str] | None = None,
) -> list[EngagementRecord]:
    """Count messages per sender, most active first.

    Args:
        messages: History messages in chronological order
        exclude_senders: Senders left out of the statistics
        exclude_event_ids: Events left out of the statistics

    Returns:
        One record per sender, sorted by descending message count

    """
    exclude_senders = exclude_senders or set()
    exclude_event_ids = exclude_event_ids or set()

    records: dict[str, EngagementRecord] = {}
    for message in messages:
        sender = message["sender"]
        if sender in exclude_senders or message["event_id"] in exclude_event_ids:
            continue
        record = records.get(sender)
        if record is None:
            records[sender] = EngagementRecord(sender, 1, message["body"], message["timestamp"])
            continue
        record.message_count += 1
        if message["timestamp"] >= record.last_timestamp:
            record.last_content = message["body"]
            record.last_timestamp = message["timestamp"]

    # sorted() is stable, so ties keep first-seen order
    return sorted(records.values(), key=lambda r: r.message_count, reverse=True)


def truncate(text: str, length: int) -> str:
    """Shorten text to ``length`` characters, marking the cut with an ellipsis."""
    if len(text) <= length:
        return text
    return text[:length] + ELLIPSIS


def format_engagement(records: list[EngagementRecord], excerpt_length: int = 50) -> str:
    """Render the statistics; no records gives an empty string."""
    entries = []
    for record in records:
        noun = "message" if record.message_count == 1 else "messages"
        entries.append(
            f"{record.user_id}: {record.message_count} {noun}\n"
            f"Last message ({format_timestamp(record.last_timestamp)}): "
            f"{truncate(record.last_content, excerpt_length)}",
        )
    return "\n\n".join(entries)


async def send_engagement_stats(ctx: BotContext, message: IncomingMessage) -> None:
    """Compute and post the room's engagement statistics."""
    history = ctx.config.history
    try:
        messages = await fetch_room_history(ctx.client, message.room_id, limit=history.limit, page_size=history.page_size)
        records = compute_engagement(messages, exclude_senders={ctx.user_id}, exclude_event_ids={message.event_id})
        stats = format_engagement(records, history.excerpt_length)
    except Exception:
        logger.exception("Failed to compute engagement stats", room_id=message.room_id)
        await send_message(ctx.client, message.room_id, "Error occurred while computing engagement stats.")
        return

    logger.info("Sending engagement stats", room_id=message.room_id, users=len(records))
    await send_message(ctx.client, message.room_id, stats)
