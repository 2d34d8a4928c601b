"""Process-wide context handed to every message handler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import nio

    from .assistant import AssistantSession
    from .config import Config
    from .pseudo_state import PseudoStateStore


@dataclass
class BotContext:
    """Everything a handler needs, created once when the bot starts.

    The assistant session lives here instead of in module globals; its
    room-to-thread map is in memory only and is lost when the process exits.
    """

    client: nio.AsyncClient
    config: Config
    store: PseudoStateStore
    assistant: AssistantSession
    user_id: str
