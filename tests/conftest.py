"""Test configuration and fixtures for roombot tests."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import nio
import pytest

from roombot.assistant import AssistantSession
from roombot.config import AssistantConfig, Config
from roombot.pseudo_state import MemoryPseudoStateStore
from roombot.runtime import BotContext

from .helpers import BOT_ID

__all__ = ["ctx", "mock_client", "mock_openai"]


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create a mock Matrix client whose sends succeed."""
    client = AsyncMock(spec=nio.AsyncClient)
    client.room_send.return_value = nio.RoomSendResponse(event_id="$sent:localhost", room_id="!room:localhost")
    return client


@pytest.fixture
def mock_openai() -> MagicMock:
    """Create a mock AsyncOpenAI client exposing the assistants beta surface."""
    client = MagicMock()
    client.beta.assistants.create = AsyncMock(return_value=SimpleNamespace(id="asst_1"))
    client.beta.threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_1"))
    client.beta.threads.messages.create = AsyncMock()
    client.beta.threads.messages.list = AsyncMock(return_value=SimpleNamespace(data=[]))
    client.beta.threads.runs.create = AsyncMock(return_value=SimpleNamespace(id="run_1", status="queued"))
    client.beta.threads.runs.retrieve = AsyncMock()
    client.beta.threads.runs.submit_tool_outputs = AsyncMock()
    client.beta.threads.runs.cancel = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def ctx(mock_client: AsyncMock, mock_openai: MagicMock) -> BotContext:
    """A handler context with in-memory state and fast polling."""
    config = Config(assistant=AssistantConfig(poll_interval=0.001, max_poll_interval=0.001, run_timeout=5.0))
    return BotContext(
        client=mock_client,
        config=config,
        store=MemoryPseudoStateStore(),
        assistant=AssistantSession(config=config.assistant, client=mock_openai),
        user_id=BOT_ID,
    )
