"""Decoding of inbound Matrix event payloads.

Reply events point at an ancestor through ``m.relates_to.m.in_reply_to``.
Messages sent by the bot may carry an application payload under the
``context`` content key that says what kind of reply the bot is waiting
for. ``decode_ancestor`` classifies an ancestor's payload so that callers
only ever see one of three shapes and never index into raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeAlias

from roombot.constants import MESSAGE_CONTEXT_KEY

REPLY_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class Expectation:
    """A well-formed expectation tag, optionally naming a person."""

    tag: str
    person_name: str | None = None


@dataclass(frozen=True)
class MalformedAncestor:
    """The ancestor carries a context payload that cannot be read."""

    reason: str


@dataclass(frozen=True)
class AbsentAncestor:
    """The ancestor carries no context payload at all."""


AncestorContext: TypeAlias = Expectation | MalformedAncestor | AbsentAncestor


def get_reply_to_event_id(content: dict[str, Any]) -> str | None:
    """Return the event ID a message replies to, if any.

    Thread messages that only carry ``m.in_reply_to`` as a fallback for
    clients without thread support are not replies.
    """
    relates_to = content.get("m.relates_to")
    if not isinstance(relates_to, dict):
        return None
    if relates_to.get("rel_type") == "m.thread" and relates_to.get("is_falling_back") is True:
        return None
    in_reply_to = relates_to.get("m.in_reply_to")
    if not isinstance(in_reply_to, dict):
        return None
    event_id = in_reply_to.get("event_id")
    return event_id if isinstance(event_id, str) and event_id else None


def extract_reply_text(body: str) -> str:
    """Strip the quoted fallback from a reply body.

    Clients put the quoted ancestor before the first blank line; the new
    text is everything after it (surrounding whitespace trimmed). Bodies
    without a separator are returned whole.
    """
    _, separator, rest = body.partition(REPLY_SEPARATOR)
    if not separator or not rest.strip():
        return body
    return rest.strip()


def decode_ancestor(source: dict[str, Any]) -> AncestorContext:
    """Classify the context payload of a replied-to event."""
    content = source.get("content")
    if not isinstance(content, dict):
        return MalformedAncestor("event has no content")

    if MESSAGE_CONTEXT_KEY not in content:
        return AbsentAncestor()

    context = content[MESSAGE_CONTEXT_KEY]
    if not isinstance(context, dict):
        return MalformedAncestor("context is not an object")
    if not context:
        return AbsentAncestor()

    tag = context.get("expecting")
    if not isinstance(tag, str) or not tag:
        return MalformedAncestor("context has no expectation tag")

    if "person" not in context:
        return Expectation(tag=tag)

    person = context["person"]
    if not isinstance(person, dict) or not isinstance(person.get("name"), str) or not person["name"]:
        return MalformedAncestor("context person has no name")
    return Expectation(tag=tag, person_name=person["name"])


def format_timestamp(timestamp_ms: int) -> str:
    """Render a Matrix millisecond timestamp as an ISO 8601 string."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).isoformat()
