"""Tests for engagement statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING

import nio
import pytest

from roombot.engagement import compute_engagement, format_engagement, send_engagement_stats, truncate

from .helpers import BOT_ID, ROOM_ID, history_event, history_page, make_message

if TYPE_CHECKING:
    from unittest.mock import AsyncMock

    from roombot.runtime import BotContext


def message(sender: str, body: str, timestamp: int, event_id: str) -> dict:
    """A history message as returned by fetch_room_history."""
    return {"sender": sender, "body": body, "timestamp": timestamp, "event_id": event_id, "content": {}}


def test_compute_engagement_counts_and_orders() -> None:
    """Counts are per sender, most active first, ties in first-seen order."""
    records = compute_engagement(
        [
            message("@bob:localhost", "b1", 1, "$1"),
            message("@alice:localhost", "a1", 2, "$2"),
            message("@carol:localhost", "c1", 3, "$3"),
            message("@alice:localhost", "a2", 4, "$4"),
        ],
    )

    assert [(r.user_id, r.message_count) for r in records] == [
        ("@alice:localhost", 2),
        ("@bob:localhost", 1),
        ("@carol:localhost", 1),
    ]
    assert records[0].last_content == "a2"
    assert records[0].last_timestamp == 4


def test_compute_engagement_exclusions() -> None:
    """Excluded senders and events are not counted."""
    records = compute_engagement(
        [
            message(BOT_ID, "welcome", 1, "$1"),
            message("@alice:localhost", "hi", 2, "$2"),
            message("@alice:localhost", "!engagement", 3, "$3"),
        ],
        exclude_senders={BOT_ID},
        exclude_event_ids={"$3"},
    )

    assert [(r.user_id, r.message_count, r.last_content) for r in records] == [("@alice:localhost", 1, "hi")]


def test_truncate() -> None:
    """Long text is cut and marked, short text is untouched."""
    assert truncate("short", 50) == "short"
    assert truncate("x" * 50, 50) == "x" * 50
    assert truncate("x" * 51, 50) == "x" * 50 + "..."


def test_format_engagement() -> None:
    """Each member gets a count line and an excerpt of their latest message."""
    records = compute_engagement(
        [
            message("@alice:localhost", "first", 0, "$1"),
            message("@alice:localhost", "y" * 60, 1000, "$2"),
            message("@bob:localhost", "hello", 2000, "$3"),
        ],
    )

    assert format_engagement(records) == (
        "@alice:localhost: 2 messages\n"
        f"Last message (1970-01-01T00:00:01+00:00): {'y' * 50}...\n\n"
        "@bob:localhost: 1 message\n"
        "Last message (1970-01-01T00:00:02+00:00): hello"
    )


def test_format_engagement_empty() -> None:
    """No records renders as an empty string."""
    assert format_engagement([]) == ""


@pytest.mark.asyncio
async def test_send_engagement_stats(ctx: BotContext, mock_client: AsyncMock) -> None:
    """Stats leave out the bot and the triggering command."""
    mock_client.room_messages.return_value = history_page(
        [
            history_event("@alice:localhost", "!engagement", 3000, "$cmd"),
            history_event(BOT_ID, "Welcome!", 2000, "$welcome"),
            history_event("@alice:localhost", "hi all", 1000, "$hi"),
        ],
        None,
    )

    await send_engagement_stats(ctx, make_message("!engagement", event_id="$cmd"))

    body = mock_client.room_send.call_args.kwargs["content"]["body"]
    assert body == "@alice:localhost: 1 message\nLast message (1970-01-01T00:00:01+00:00): hi all"


@pytest.mark.asyncio
async def test_send_engagement_stats_empty_room(ctx: BotContext, mock_client: AsyncMock) -> None:
    """A room without other messages gets an empty stats message."""
    mock_client.room_messages.return_value = history_page([], None)

    await send_engagement_stats(ctx, make_message("!engagement"))

    assert mock_client.room_send.call_args.kwargs["content"]["body"] == ""


@pytest.mark.asyncio
async def test_send_engagement_stats_history_error(ctx: BotContext, mock_client: AsyncMock) -> None:
    """A history failure is reported to the room."""
    mock_client.room_messages.return_value = nio.RoomMessagesError("M_FORBIDDEN")

    await send_engagement_stats(ctx, make_message("!engagement"))

    body = mock_client.room_send.call_args.kwargs["content"]["body"]
    assert body == "Error occurred while computing engagement stats."
