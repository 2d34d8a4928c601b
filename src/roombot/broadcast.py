"""Deliver a message to every room member through fresh direct-message rooms."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import MatrixRequestError
from .logging_config import get_logger
from .matrix.client import create_direct_message_room, get_room_membership, send_message

if TYPE_CHECKING:
    from .runtime import BotContext

logger = get_logger(__name__)


async def message_every_member(ctx: BotContext, room_id: str, message: str, sender: str) -> int:
    """Send ``message`` to each joined member except the bot and the sender.

    A failure for one member is logged and does not stop the others.

    Returns:
        The number of members the message was delivered to

    """
    try:
        memberships = await get_room_membership(ctx.client, room_id)
    except Exception:
        logger.exception("Error messaging members", room_id=room_id)
        await send_message(ctx.client, room_id, "Error occurred while messaging members.")
        return 0

    recipients = [
        m.user_id
        for m in memberships
        if m.membership == "join" and m.user_id not in {ctx.user_id, sender}
    ]

    messaged: set[str] = set()
    for user_id in recipients:
        if user_id in messaged:
            continue
        try:
            dm_room_id = await create_direct_message_room(ctx.client, sender, user_id)
            if await send_message(ctx.client, dm_room_id, message) is None:
                raise MatrixRequestError("room_send", dm_room_id)  # noqa: TRY301
        except Exception:
            logger.exception("Failed to message member", user_id=user_id, room_id=room_id)
            continue
        messaged.add(user_id)

    logger.info("Broadcast finished", room_id=room_id, delivered=len(messaged), recipients=len(recipients))
    await send_message(ctx.client, room_id, f'Created {len(messaged)} direct message rooms and sent: "{message}"')
    return len(messaged)
