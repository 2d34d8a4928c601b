"""Matrix bot that feeds room events into the message router."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import nio

from .assistant import AssistantSession
from .constants import MATRIX_HOMESERVER, OPENAI_API_KEY, STORAGE_PATH
from .greeter import greet_member
from .logging_config import get_logger
from .matrix.client import create_client, join_room, login
from .pseudo_state import create_pseudo_state_store
from .routing import IncomingMessage, dispatch_message
from .runtime import BotContext

if TYPE_CHECKING:
    from .config import Config

logger = get_logger(__name__)

SYNC_TIMEOUT_MS = 30000


@dataclass
class RoomBot:
    """A single bot account listening to every room it has joined."""

    config: Config
    user_id: str
    access_token: str | None = None
    password: str | None = None
    homeserver: str = MATRIX_HOMESERVER
    storage_path: Path = field(default_factory=lambda: Path(STORAGE_PATH))
    openai_api_key: str | None = OPENAI_API_KEY

    client: nio.AsyncClient | None = field(default=None, init=False)
    context: BotContext | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.access_token and not self.password:
            msg = "Either a Matrix access token or a password is required."
            raise ValueError(msg)

    def build_context(self, client: nio.AsyncClient) -> BotContext:
        """Create the handler context for a connected client."""
        return BotContext(
            client=client,
            config=self.config,
            store=create_pseudo_state_store(self.config, self.storage_path),
            assistant=AssistantSession(config=self.config.assistant, api_key=self.openai_api_key),
            user_id=self.user_id,
        )

    async def start(self) -> None:
        """Log in, skip the backlog and register event callbacks."""
        self.client = create_client(self.homeserver, self.user_id, self.access_token)
        if not self.access_token:
            assert self.password is not None
            await login(self.client, self.password)

        self.context = self.build_context(self.client)

        # Sync once before registering callbacks so old events are not replayed
        response = await self.client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if isinstance(response, nio.SyncError):
            logger.warning("Initial sync failed", error=str(response))

        for room_id in list(self.client.invited_rooms):
            await join_room(self.client, room_id)

        self.client.add_event_callback(self._on_message, nio.RoomMessageText)
        self.client.add_event_callback(self._on_member, nio.RoomMemberEvent)
        self.client.add_event_callback(self._on_invite, nio.InviteMemberEvent)
        logger.info("Bot started", user_id=self.user_id, homeserver=self.homeserver)

    async def sync_forever(self) -> None:
        """Run the sync loop."""
        assert self.client is not None
        await self.client.sync_forever(timeout=SYNC_TIMEOUT_MS)

    async def stop(self) -> None:
        """Close the Matrix and OpenAI clients."""
        if self.context is not None:
            await self.context.assistant.close()
        if self.client is not None:
            await self.client.close()
        logger.info("Bot stopped", user_id=self.user_id)

    async def _on_invite(self, room: nio.MatrixRoom, event: nio.InviteMemberEvent) -> None:
        assert self.client is not None
        if event.state_key != self.user_id or event.membership != "invite":
            return
        logger.info("Received invite", room_id=room.room_id, sender=event.sender)
        await join_room(self.client, room.room_id)

    async def _on_member(self, room: nio.MatrixRoom, event: nio.RoomMemberEvent) -> None:
        assert self.context is not None
        if event.membership != "join" or event.prev_membership == "join":
            return
        if event.state_key == self.user_id:
            return
        logger.info("Member joined", room_id=room.room_id, user_id=event.state_key)
        try:
            await greet_member(self.context, room.room_id, event.state_key)
        except Exception:
            logger.exception("Failed to greet member", room_id=room.room_id, user_id=event.state_key)

    async def _on_message(self, room: nio.MatrixRoom, event: nio.RoomMessageText) -> None:
        assert self.context is not None
        if event.sender == self.user_id:
            return

        message = IncomingMessage.from_event(room.room_id, event)
        try:
            await dispatch_message(self.context, message)
        except Exception:
            # Handlers without their own boundary end here; the room hears nothing
            logger.exception("Error handling message", room_id=room.room_id, event_id=event.event_id)
