"""Tests for reply detection and ancestor payload decoding."""

from __future__ import annotations

import pytest

from roombot.matrix.events import (
    AbsentAncestor,
    Expectation,
    MalformedAncestor,
    decode_ancestor,
    extract_reply_text,
    format_timestamp,
    get_reply_to_event_id,
)

from .helpers import thread_relation


class TestGetReplyToEventId:
    """Tests for reading the in-reply-to relation."""

    def test_reply(self) -> None:
        """A reply relation yields the ancestor event ID."""
        content = {"body": "x", "m.relates_to": {"m.in_reply_to": {"event_id": "$parent"}}}
        assert get_reply_to_event_id(content) == "$parent"

    def test_plain_message(self) -> None:
        """A message without relations is not a reply."""
        assert get_reply_to_event_id({"body": "hello"}) is None

    def test_edit_relation(self) -> None:
        """An edit relation is not a reply."""
        content = {"m.relates_to": {"rel_type": "m.replace", "event_id": "$original"}}
        assert get_reply_to_event_id(content) is None

    def test_thread_fallback(self) -> None:
        """A plain thread message carries m.in_reply_to only as a fallback and is not a reply."""
        content = {"m.relates_to": thread_relation("$root", "$latest")}
        assert get_reply_to_event_id(content) is None

    def test_reply_inside_thread(self) -> None:
        """An explicit quote-reply inside a thread is a reply."""
        content = {"m.relates_to": thread_relation("$root", "$prompt", is_falling_back=False)}
        assert get_reply_to_event_id(content) == "$prompt"

    def test_malformed_relation(self) -> None:
        """Non-object relation payloads are ignored."""
        assert get_reply_to_event_id({"m.relates_to": "nope"}) is None
        assert get_reply_to_event_id({"m.relates_to": {"m.in_reply_to": {"event_id": ""}}}) is None


class TestExtractReplyText:
    """Tests for stripping the quoted fallback."""

    def test_strips_quote(self) -> None:
        """Everything after the first blank line is the reply."""
        body = "> <@bot:localhost> Quote-reply to this message\n\n  Moderator  "
        assert extract_reply_text(body) == "Moderator"

    def test_keeps_later_blank_lines(self) -> None:
        """Only the first separator splits the body."""
        assert extract_reply_text("> quote\n\nfirst\n\nsecond") == "first\n\nsecond"

    def test_without_separator(self) -> None:
        """A body without a quoted fallback is returned unchanged."""
        assert extract_reply_text("Moderator") == "Moderator"


class TestDecodeAncestor:
    """Tests for classifying ancestor context payloads."""

    def test_role_expectation(self) -> None:
        """A complete payload decodes to an expectation with the person's name."""
        source = {"content": {"body": "x", "context": {"person": {"name": "Alice"}, "expecting": "role_name"}}}
        assert decode_ancestor(source) == Expectation(tag="role_name", person_name="Alice")

    def test_expectation_without_person(self) -> None:
        """A tag on its own is still an expectation."""
        source = {"content": {"context": {"expecting": "something_else"}}}
        assert decode_ancestor(source) == Expectation(tag="something_else")

    @pytest.mark.parametrize(
        "source",
        [
            {"content": {"body": "hello"}},
            {"content": {"body": "hello", "context": {}}},
        ],
    )
    def test_absent(self, source: dict) -> None:
        """No context, or an empty one, expects nothing."""
        assert decode_ancestor(source) == AbsentAncestor()

    @pytest.mark.parametrize(
        "source",
        [
            {},
            {"content": {"context": "role_name"}},
            {"content": {"context": {"person": {"name": "Alice"}}}},
            {"content": {"context": {"expecting": ""}}},
            {"content": {"context": {"expecting": "role_name", "person": {}}}},
            {"content": {"context": {"expecting": "role_name", "person": {"name": 42}}}},
        ],
    )
    def test_malformed(self, source: dict) -> None:
        """Unreadable payloads are reported as malformed."""
        assert isinstance(decode_ancestor(source), MalformedAncestor)


def test_format_timestamp() -> None:
    """Millisecond timestamps render as UTC ISO 8601."""
    assert format_timestamp(0) == "1970-01-01T00:00:00+00:00"
    assert format_timestamp(1_700_000_000_500) == "2023-11-14T22:13:20.500000+00:00"
