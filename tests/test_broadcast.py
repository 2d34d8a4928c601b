"""Tests for messaging every room member."""

from __future__ import annotations

from typing import TYPE_CHECKING

import nio
import pytest

from roombot.broadcast import message_every_member

from .helpers import BOT_ID, ROOM_ID, member_event

if TYPE_CHECKING:
    from unittest.mock import AsyncMock

    from roombot.runtime import BotContext

SENDER = "@alice:localhost"


def set_members(client: AsyncMock, *events: dict) -> None:
    """Make room_get_state return the given member events."""
    client.room_get_state.return_value = nio.RoomGetStateResponse(events=list(events), room_id=ROOM_ID)


def sent_bodies(client: AsyncMock) -> list[tuple[str, str]]:
    """(room, body) of every message sent."""
    return [(call.kwargs["room_id"], call.kwargs["content"]["body"]) for call in client.room_send.call_args_list]


@pytest.mark.asyncio
async def test_messages_joined_members_only(ctx: BotContext, mock_client: AsyncMock) -> None:
    """The bot, the sender and non-joined users are skipped."""
    set_members(
        mock_client,
        member_event(BOT_ID),
        member_event(SENDER),
        member_event("@bob:localhost"),
        member_event("@carol:localhost", "leave"),
        member_event("@dave:localhost", "invite"),
    )
    mock_client.room_create.return_value = nio.RoomCreateResponse(room_id="!dm-bob:localhost")

    delivered = await message_every_member(ctx, ROOM_ID, "Meeting at 5", SENDER)

    assert delivered == 1
    mock_client.room_create.assert_awaited_once()
    assert mock_client.room_create.call_args.kwargs["invite"] == ["@bob:localhost"]
    assert sent_bodies(mock_client) == [
        ("!dm-bob:localhost", "Meeting at 5"),
        (ROOM_ID, 'Created 1 direct message rooms and sent: "Meeting at 5"'),
    ]


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_rest(ctx: BotContext, mock_client: AsyncMock) -> None:
    """A member whose room cannot be created is skipped and not counted."""
    set_members(mock_client, member_event("@bob:localhost"), member_event("@carol:localhost"))
    mock_client.room_create.side_effect = [
        nio.RoomCreateError("M_FORBIDDEN"),
        nio.RoomCreateResponse(room_id="!dm-carol:localhost"),
    ]

    delivered = await message_every_member(ctx, ROOM_ID, "hi", SENDER)

    assert delivered == 1
    assert sent_bodies(mock_client)[-1] == (ROOM_ID, 'Created 1 direct message rooms and sent: "hi"')


@pytest.mark.asyncio
async def test_failed_send_is_not_counted(ctx: BotContext, mock_client: AsyncMock) -> None:
    """A room that was created but whose message failed does not count."""
    set_members(mock_client, member_event("@bob:localhost"))
    mock_client.room_create.return_value = nio.RoomCreateResponse(room_id="!dm-bob:localhost")
    mock_client.room_send.side_effect = [
        nio.RoomSendError("M_FORBIDDEN"),
        nio.RoomSendResponse(event_id="$confirm", room_id=ROOM_ID),
    ]

    assert await message_every_member(ctx, ROOM_ID, "hi", SENDER) == 0
    assert sent_bodies(mock_client)[-1] == (ROOM_ID, 'Created 0 direct message rooms and sent: "hi"')


@pytest.mark.asyncio
async def test_membership_failure(ctx: BotContext, mock_client: AsyncMock) -> None:
    """If the member list is unavailable the room is told and nobody is messaged."""
    mock_client.room_get_state.return_value = nio.RoomGetStateError("M_FORBIDDEN")

    assert await message_every_member(ctx, ROOM_ID, "hi", SENDER) == 0
    mock_client.room_create.assert_not_called()
    assert sent_bodies(mock_client) == [(ROOM_ID, "Error occurred while messaging members.")]
