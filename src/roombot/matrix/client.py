"""Matrix client operations and utilities."""

from __future__ import annotations

import ssl as ssl_module
from dataclasses import dataclass
from typing import Any

import nio
from nio.api import RoomPreset

from roombot.constants import MATRIX_SSL_VERIFY, MESSAGE_CONTEXT_KEY
from roombot.errors import MatrixRequestError
from roombot.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RoomMember:
    """A joined room member with the display name from their profile."""

    user_id: str
    display_name: str


@dataclass(frozen=True)
class RoomMembership:
    """Membership state of a user in a room (join, leave, invite, ban, knock)."""

    user_id: str
    membership: str


def _maybe_ssl_context(homeserver: str) -> ssl_module.SSLContext | None:
    if not homeserver.startswith("https://"):
        return None
    ssl_context = ssl_module.create_default_context()
    if not MATRIX_SSL_VERIFY:
        # Dev setups with self-signed certificates
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl_module.CERT_NONE
    return ssl_context


def create_client(
    homeserver: str,
    user_id: str,
    access_token: str | None = None,
) -> nio.AsyncClient:
    """Create a Matrix client, authenticated when an access token is given.

    Args:
        homeserver: The Matrix homeserver URL
        user_id: The full Matrix user ID of the bot
        access_token: Optional access token; without one call ``login`` next

    Returns:
        nio.AsyncClient: The Matrix client instance

    """
    client = nio.AsyncClient(homeserver, user_id, ssl=_maybe_ssl_context(homeserver))
    if access_token:
        client.access_token = access_token
        client.user_id = user_id
    return client


async def login(client: nio.AsyncClient, password: str) -> None:
    """Log an existing client in with a password.

    Raises:
        MatrixRequestError: If login fails

    """
    response = await client.login(password, device_name="roombot")
    if not isinstance(response, nio.LoginResponse):
        raise MatrixRequestError("login", response)
    logger.info("Successfully logged in", user_id=client.user_id)


async def join_room(client: nio.AsyncClient, room_id: str) -> bool:
    """Join a Matrix room.

    Returns:
        True if successful, False otherwise

    """
    response = await client.join(room_id)
    if isinstance(response, nio.JoinResponse):
        logger.info("Joined room", room_id=room_id)
        return True
    logger.warning("Could not join room", room_id=room_id, error=str(response))
    return False


async def send_message(
    client: nio.AsyncClient,
    room_id: str,
    body: str,
    context: dict[str, Any] | None = None,
) -> str | None:
    """Send a plain-text message to a Matrix room.

    Args:
        client: Authenticated Matrix client
        room_id: The room ID to send the message to
        body: The message text
        context: Optional application payload embedded in the event content

    Returns:
        The event ID of the sent message, or None if sending failed

    """
    content: dict[str, Any] = {"msgtype": "m.text", "body": body}
    if context is not None:
        content[MESSAGE_CONTEXT_KEY] = context

    response = await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content=content,
    )
    if isinstance(response, nio.RoomSendResponse):
        logger.debug("Sent message", room_id=room_id, event_id=response.event_id)
        return str(response.event_id)
    logger.error("Failed to send message", room_id=room_id, error=str(response))
    return None


async def get_event(client: nio.AsyncClient, room_id: str, event_id: str) -> dict[str, Any]:
    """Fetch a single event and return its raw source.

    Raises:
        MatrixRequestError: If the event cannot be fetched

    """
    response = await client.room_get_event(room_id, event_id)
    if not isinstance(response, nio.RoomGetEventResponse):
        raise MatrixRequestError("room_get_event", response)
    return dict(response.event.source)


async def get_room_membership(client: nio.AsyncClient, room_id: str) -> list[RoomMembership]:
    """Get every user with a membership event in the room, whatever its state.

    Raises:
        MatrixRequestError: If the room state cannot be fetched

    """
    response = await client.room_get_state(room_id)
    if not isinstance(response, nio.RoomGetStateResponse):
        raise MatrixRequestError("room_get_state", response)

    return [
        RoomMembership(user_id=event["state_key"], membership=event.get("content", {}).get("membership", "leave"))
        for event in response.events
        if event.get("type") == "m.room.member" and event.get("state_key")
    ]


async def get_display_name(client: nio.AsyncClient, user_id: str) -> str:
    """Get a user's display name, falling back to the user ID."""
    response = await client.get_displayname(user_id)
    if isinstance(response, nio.ProfileGetDisplayNameResponse) and response.displayname:
        return str(response.displayname)
    logger.debug("No display name found", user_id=user_id)
    return user_id


async def get_room_members(client: nio.AsyncClient, room_id: str) -> list[RoomMember]:
    """Get the joined members of a room together with their display names."""
    memberships = await get_room_membership(client, room_id)
    members = []
    for membership in memberships:
        if membership.membership != "join":
            continue
        display_name = await get_display_name(client, membership.user_id)
        members.append(RoomMember(user_id=membership.user_id, display_name=display_name))
    return members


def _history_message(source: dict[str, Any]) -> dict[str, Any]:
    content = source.get("content", {})
    if not isinstance(content, dict):
        content = {}
    body = content.get("body", "")
    return {
        "sender": source.get("sender", ""),
        "body": body if isinstance(body, str) else "",
        "timestamp": int(source.get("origin_server_ts", 0)),
        "event_id": source.get("event_id", ""),
        "content": content,
    }


async def fetch_room_history(
    client: nio.AsyncClient,
    room_id: str,
    limit: int = 10000,
    page_size: int = 100,
    since_ts: int | None = None,
) -> list[dict[str, Any]]:
    """Fetch recent messages of a room, paging backwards from the newest.

    Args:
        client: The Matrix client instance
        room_id: The room ID to fetch messages from
        limit: Maximum number of messages to return
        page_size: Number of events requested per page
        since_ts: Only include messages with ``origin_server_ts >= since_ts``

    Returns:
        List of messages in chronological order, each containing sender, body, timestamp, event_id and content

    Raises:
        MatrixRequestError: If a page cannot be fetched

    """
    messages: list[dict[str, Any]] = []
    from_token = None

    while len(messages) < limit:
        response = await client.room_messages(
            room_id,
            start=from_token,
            limit=min(page_size, limit - len(messages)),
            message_filter={"types": ["m.room.message"]},
            direction=nio.MessageDirection.back,
        )
        if not isinstance(response, nio.RoomMessagesResponse):
            raise MatrixRequestError("room_messages", response)

        if not response.chunk:
            break

        reached_cutoff = False
        for event in response.chunk:
            source = event.source
            if source.get("type") != "m.room.message":
                continue
            message = _history_message(source)
            if since_ts is not None and message["timestamp"] < since_ts:
                reached_cutoff = True
                break
            messages.append(message)

        if reached_cutoff or not response.end or response.end == from_token:
            break
        from_token = response.end

    return list(reversed(messages))  # Return in chronological order


async def redact_event(client: nio.AsyncClient, room_id: str, event_id: str, reason: str) -> str:
    """Redact an event.

    Returns:
        The event ID of the redaction

    Raises:
        MatrixRequestError: If the redaction is refused

    """
    response = await client.room_redact(room_id, event_id, reason=reason)
    if not isinstance(response, nio.RoomRedactResponse):
        raise MatrixRequestError("room_redact", response)
    logger.info("Redacted event", room_id=room_id, event_id=event_id)
    return str(response.event_id)


async def create_direct_message_room(client: nio.AsyncClient, sender: str, recipient_id: str) -> str:
    """Create a new direct-message room with a single invitee.

    Args:
        client: Authenticated Matrix client
        sender: User on whose behalf the room is created (used in the room name)
        recipient_id: The user to invite

    Returns:
        The new room ID

    Raises:
        MatrixRequestError: If the room cannot be created

    """
    response = await client.room_create(
        is_direct=True,
        preset=RoomPreset.trusted_private_chat,
        invite=[recipient_id],
        initial_state=[{"type": "m.room.name", "content": {"name": f"DM: {sender} & {recipient_id}"}}],
    )
    if not isinstance(response, nio.RoomCreateResponse):
        raise MatrixRequestError("room_create", response)
    logger.info("Created direct message room", room_id=response.room_id, recipient=recipient_id)
    return str(response.room_id)
