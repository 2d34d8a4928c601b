"""Per-room role ledger kept in pseudo-state."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .constants import ROLE_LEDGER_EVENT_TYPE
from .logging_config import get_logger

if TYPE_CHECKING:
    from .pseudo_state import PseudoStateStore

logger = get_logger(__name__)


class Person(BaseModel):
    """The person a role is assigned to."""

    model_config = ConfigDict(frozen=True)

    name: str


class Role(BaseModel):
    """A free-form role name."""

    model_config = ConfigDict(frozen=True)

    name: str


class RoleAssignment(BaseModel):
    """A single (person, role) pair. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    person: Person
    role: Role


class RoleLedger(BaseModel):
    """Ordered record of every role assignment made in a room."""

    model_config = ConfigDict(populate_by_name=True)

    assigned_roles: list[RoleAssignment] = Field(default_factory=list, alias="assignedRoles")


async def get_role_ledger(store: PseudoStateStore, room_id: str) -> RoleLedger:
    """Read a room's ledger; a room without one has an empty ledger."""
    record = await store.get(room_id, ROLE_LEDGER_EVENT_TYPE)
    if record is None:
        return RoleLedger()
    return RoleLedger.model_validate(record)


async def assign_role(store: PseudoStateStore, person_name: str, room_id: str, role_name: str) -> RoleAssignment:
    """Append a new assignment to the room's ledger.

    The person is not checked against the room's members and duplicates are
    kept: assigning the same role twice produces two entries.
    """
    ledger = await get_role_ledger(store, room_id)
    assignment = RoleAssignment(person=Person(name=person_name), role=Role(name=role_name))
    ledger.assigned_roles.append(assignment)

    if not await store.set(room_id, ROLE_LEDGER_EVENT_TYPE, ledger.model_dump(mode="json", by_alias=True)):
        logger.error("Failed to store role ledger", room_id=room_id)

    logger.info("Assigned role", room_id=room_id, person=person_name, role=role_name, assignment_id=assignment.id)
    return assignment
