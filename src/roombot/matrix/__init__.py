"""Matrix operations module for roombot."""

from .client import (
    RoomMember,
    RoomMembership,
    create_client,
    create_direct_message_room,
    fetch_room_history,
    get_display_name,
    get_event,
    get_room_members,
    get_room_membership,
    join_room,
    login,
    redact_event,
    send_message,
)
from .events import (
    AbsentAncestor,
    AncestorContext,
    Expectation,
    MalformedAncestor,
    decode_ancestor,
    extract_reply_text,
    format_timestamp,
    get_reply_to_event_id,
)

__all__ = [
    "AbsentAncestor",
    "AncestorContext",
    "Expectation",
    "MalformedAncestor",
    "RoomMember",
    "RoomMembership",
    "create_client",
    "create_direct_message_room",
    "decode_ancestor",
    "extract_reply_text",
    "fetch_room_history",
    "format_timestamp",
    "get_display_name",
    "get_event",
    "get_reply_to_event_id",
    "get_room_members",
    "get_room_membership",
    "join_room",
    "login",
    "redact_event",
    "send_message",
]
