"""Shared builders for roombot tests."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import nio

from roombot.routing import IncomingMessage

BOT_ID = "@bot:localhost"
ROOM_ID = "!room:localhost"


def make_message(
    body: str,
    sender: str = "@alice:localhost",
    event_id: str = "$msg:localhost",
    room_id: str = ROOM_ID,
    reply_to: str | None = None,
    relates_to: dict[str, Any] | None = None,
) -> IncomingMessage:
    """Build an inbound message, optionally as a reply or with an explicit relation."""
    content: dict[str, Any] = {"msgtype": "m.text", "body": body}
    if reply_to:
        content["m.relates_to"] = {"m.in_reply_to": {"event_id": reply_to}}
    if relates_to is not None:
        content["m.relates_to"] = relates_to
    return IncomingMessage(room_id=room_id, event_id=event_id, sender=sender, body=body, content=content)


def history_event(sender: str, body: str, timestamp: int, event_id: str) -> MagicMock:
    """A room_messages chunk entry exposing only its raw source."""
    event = MagicMock()
    event.source = {
        "type": "m.room.message",
        "sender": sender,
        "event_id": event_id,
        "origin_server_ts": timestamp,
        "content": {"msgtype": "m.text", "body": body},
    }
    return event


def member_event(user_id: str, membership: str = "join") -> dict[str, Any]:
    """A raw m.room.member state event as returned by room_get_state."""
    return {
        "type": "m.room.member",
        "state_key": user_id,
        "sender": user_id,
        "content": {"membership": membership},
    }


def run(run_id: str, status: str, tool_calls: list[SimpleNamespace] | None = None) -> SimpleNamespace:
    """A run object in the shape returned by the OpenAI SDK."""
    required_action = None
    if tool_calls is not None:
        required_action = SimpleNamespace(submit_tool_outputs=SimpleNamespace(tool_calls=tool_calls))
    return SimpleNamespace(id=run_id, status=status, required_action=required_action)


def tool_call(call_id: str, name: str, arguments: str) -> SimpleNamespace:
    """A function tool call in the shape returned by the OpenAI SDK."""
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def text_message(role: str, text: str) -> SimpleNamespace:
    """A thread message whose first content block is text."""
    block = SimpleNamespace(type="text", text=SimpleNamespace(value=text))
    return SimpleNamespace(role=role, content=[block])


def history_page(chunk: list[MagicMock], end: str | None = None) -> MagicMock:
    """A room_messages response page."""
    page = MagicMock(spec=nio.RoomMessagesResponse)
    page.chunk = chunk
    page.end = end
    return page


def thread_relation(root_id: str, latest_id: str, *, is_falling_back: bool = True) -> dict[str, Any]:
    """An m.thread relation as sent by thread-aware clients."""
    return {
        "rel_type": "m.thread",
        "event_id": root_id,
        "is_falling_back": is_falling_back,
        "m.in_reply_to": {"event_id": latest_id},
    }
