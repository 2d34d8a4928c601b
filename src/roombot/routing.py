"""Classify inbound room messages and hand each to exactly one handler.

Routes are tried in order and the first whose predicate matches wins:
moderation, engagement stats, broadcast, role prompt, reply correlation,
assistant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .assistant import handle_assistant_message
from .broadcast import message_every_member
from .commands import CommandType, command_parser
from .engagement import send_engagement_stats
from .logging_config import get_logger
from .matrix.client import send_message
from .matrix.events import get_reply_to_event_id
from .moderation import contains_disallowed_content, moderate_message
from .reply_correlation import handle_reply, request_role_for_person

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import nio

    from .commands import Command
    from .runtime import BotContext

logger = get_logger(__name__)


@dataclass(frozen=True)
class IncomingMessage:
    """The parts of a room message event the handlers work with."""

    room_id: str
    event_id: str
    sender: str
    body: str
    content: dict[str, Any]

    @property
    def reply_to_event_id(self) -> str | None:
        """Event this message replies to, if it is a reply."""
        return get_reply_to_event_id(self.content)

    @property
    def command(self) -> Command | None:
        """The command in the body, if any."""
        return command_parser.parse(self.body)

    @classmethod
    def from_event(cls, room_id: str, event: nio.RoomMessageText) -> IncomingMessage:
        """Build from a nio text message event."""
        content = event.source.get("content", {})
        return cls(
            room_id=room_id,
            event_id=event.event_id,
            sender=event.sender,
            body=event.body,
            content=content if isinstance(content, dict) else {},
        )


@dataclass(frozen=True)
class Route:
    """A named (predicate, handler) pair."""

    name: str
    matches: Callable[[BotContext, IncomingMessage], bool]
    handle: Callable[[BotContext, IncomingMessage], Awaitable[None]]


def _is_command(message: IncomingMessage, command_type: CommandType) -> bool:
    command = message.command
    return command is not None and command.type == command_type


def _command_text(message: IncomingMessage, key: str = "message") -> str:
    command = message.command
    assert command is not None
    return str(command.args.get(key, ""))


async def _handle_broadcast(ctx: BotContext, message: IncomingMessage) -> None:
    text = _command_text(message)
    if not text:
        await send_message(ctx.client, message.room_id, "Please provide a message to send.")
        return
    await message_every_member(ctx, message.room_id, text, message.sender)


async def _handle_role_prompt(ctx: BotContext, message: IncomingMessage) -> None:
    person_name = _command_text(message, "person")
    if not person_name:
        await send_message(ctx.client, message.room_id, "Please provide the name of the person to assign a role to.")
        return
    await request_role_for_person(ctx, message.room_id, person_name)


async def _handle_reply(ctx: BotContext, message: IncomingMessage) -> None:
    await handle_reply(ctx, message)


async def _handle_assistant(ctx: BotContext, message: IncomingMessage) -> None:
    text = _command_text(message)
    if not text:
        await send_message(ctx.client, message.room_id, "Please provide a message for the assistant.")
        return
    await handle_assistant_message(ctx, message.room_id, text, exclude_event_id=message.event_id)


ROUTES: tuple[Route, ...] = (
    Route(
        name="moderation",
        matches=lambda ctx, m: contains_disallowed_content(m.body, ctx.config.moderation.disallowed_terms),
        handle=moderate_message,
    ),
    Route(
        name="engagement",
        matches=lambda _ctx, m: _is_command(m, CommandType.ENGAGEMENT),
        handle=send_engagement_stats,
    ),
    Route(
        name="broadcast",
        matches=lambda _ctx, m: _is_command(m, CommandType.BROADCAST),
        handle=_handle_broadcast,
    ),
    Route(
        name="role_prompt",
        matches=lambda _ctx, m: _is_command(m, CommandType.ASSIGN_ROLE),
        handle=_handle_role_prompt,
    ),
    Route(
        name="reply",
        matches=lambda _ctx, m: m.reply_to_event_id is not None,
        handle=_handle_reply,
    ),
    Route(
        name="assistant",
        matches=lambda _ctx, m: _is_command(m, CommandType.ASSISTANT),
        handle=_handle_assistant,
    ),
)


def select_route(ctx: BotContext, message: IncomingMessage, routes: tuple[Route, ...] = ROUTES) -> Route | None:
    """Return the first route whose predicate matches."""
    return next((route for route in routes if route.matches(ctx, message)), None)


async def dispatch_message(
    ctx: BotContext,
    message: IncomingMessage,
    routes: tuple[Route, ...] = ROUTES,
) -> str | None:
    """Handle a message with the first matching route.

    Returns:
        The name of the route that handled the message, or None if it was ignored

    """
    route = select_route(ctx, message, routes)
    if route is None:
        return None
    logger.info("Dispatching message", route=route.name, room_id=message.room_id, event_id=message.event_id)
    await route.handle(ctx, message)
    return route.name
