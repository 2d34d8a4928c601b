"""Route quote-replies to the action their ancestor message asked for.

The bot tags some of its own messages with an expectation (for now only
``role_name``). A reply to such a message is consumed once: the reply text
is handed to the action the tag names, and the ancestor is not revisited.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import EXPECTING_ROLE_NAME
from .logging_config import get_logger
from .matrix.client import get_event, send_message
from .matrix.events import AbsentAncestor, Expectation, MalformedAncestor, decode_ancestor, extract_reply_text
from .roles import RoleAssignment, assign_role

if TYPE_CHECKING:
    from .routing import IncomingMessage
    from .runtime import BotContext

logger = get_logger(__name__)


async def request_role_for_person(ctx: BotContext, room_id: str, person_name: str) -> str | None:
    """Ask the room which role to give a person; the answer arrives as a reply."""
    return await send_message(
        ctx.client,
        room_id,
        f"Quote-reply to this message with the name of the role you want to assign to {person_name}.",
        context={"person": {"name": person_name}, "expecting": EXPECTING_ROLE_NAME},
    )


async def handle_reply(ctx: BotContext, message: IncomingMessage) -> RoleAssignment | None:
    """Act on a reply according to the expectation carried by its ancestor.

    Returns:
        The role assignment that was made, or None if the reply was ignored

    """
    assert message.reply_to_event_id is not None
    reply_text = extract_reply_text(message.body)
    ancestor = await get_event(ctx.client, message.room_id, message.reply_to_event_id)

    if ancestor.get("sender") != ctx.user_id:
        logger.debug("Ignoring reply to a message the bot did not send", event_id=message.event_id)
        return None

    match decode_ancestor(ancestor):
        case Expectation(tag=tag, person_name=person_name) if tag == EXPECTING_ROLE_NAME and person_name:
            return await assign_role(ctx.store, person_name, message.room_id, reply_text)
        case Expectation(tag=tag):
            logger.debug("Reply to message with unhandled expectation", tag=tag, event_id=message.event_id)
        case MalformedAncestor(reason=reason):
            logger.warning(
                "Replied-to message has a malformed context",
                reason=reason,
                ancestor_id=message.reply_to_event_id,
            )
        case AbsentAncestor():
            logger.debug("Replied-to message expects nothing", ancestor_id=message.reply_to_event_id)
    return None
