"""Bot-managed stand-in for Matrix room state.

The bot cannot write real room state, so application records are kept in a
private store keyed by ``(scope_id, type_key)``. There is no versioning:
concurrent writers to the same key lose updates (last write wins).
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Self

import yaml
from pydantic import BaseModel, Field

from .logging_config import get_logger

if TYPE_CHECKING:
    from .config import Config

logger = get_logger(__name__)


class PseudoStateStore(Protocol):
    """Storage contract for pseudo-state records."""

    async def get(self, scope_id: str, type_key: str) -> dict[str, Any] | None:
        """Return the stored record, or None if there is none."""
        ...

    async def set(self, scope_id: str, type_key: str, value: dict[str, Any]) -> bool:
        """Store a record, replacing any previous one."""
        ...


class MemoryPseudoStateStore:
    """Pseudo-state kept in process memory."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], dict[str, Any]] = {}

    async def get(self, scope_id: str, type_key: str) -> dict[str, Any] | None:
        record = self._records.get((scope_id, type_key))
        return copy.deepcopy(record) if record is not None else None

    async def set(self, scope_id: str, type_key: str, value: dict[str, Any]) -> bool:
        self._records[(scope_id, type_key)] = copy.deepcopy(value)
        return True


class PseudoStateDocument(BaseModel):
    """On-disk layout: scope ID -> type key -> record."""

    scopes: dict[str, dict[str, dict[str, Any]]] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> Self:
        """Load the document from file."""
        if not path.exists():
            return cls()

        with path.open() as f:
            data = yaml.safe_load(f) or {}

        return cls.model_validate(data)

    def save(self, path: Path) -> None:
        """Save the document to file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)


class YamlPseudoStateStore:
    """Pseudo-state persisted in a single YAML file, re-read on every access."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def get(self, scope_id: str, type_key: str) -> dict[str, Any] | None:
        document = PseudoStateDocument.load(self.path)
        return document.scopes.get(scope_id, {}).get(type_key)

    async def set(self, scope_id: str, type_key: str, value: dict[str, Any]) -> bool:
        document = PseudoStateDocument.load(self.path)
        document.scopes.setdefault(scope_id, {})[type_key] = value
        try:
            document.save(self.path)
        except OSError:
            logger.exception("Failed to write pseudo-state", path=str(self.path), scope_id=scope_id, type_key=type_key)
            return False
        return True


def create_pseudo_state_store(config: Config, storage_path: Path) -> PseudoStateStore:
    """Build the pseudo-state backend selected in the configuration."""
    if config.storage.backend == "memory":
        logger.warning("Using in-memory pseudo-state, role assignments will not survive a restart")
        return MemoryPseudoStateStore()
    path = Path(storage_path) / config.storage.filename
    logger.info("Using YAML pseudo-state", path=str(path))
    return YamlPseudoStateStore(path)
