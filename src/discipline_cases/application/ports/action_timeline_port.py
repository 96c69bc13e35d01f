"""Port for the append-only, soft-deletable case action timeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Final, Protocol
from uuid import UUID

from discipline_cases.application.ports.partial_update import UNSET, Unset, provided_fields
from discipline_cases.domain.sanction_level import SanctionLevel

ACTION_TYPE_SANCTION: Final = "SANKSI"


@dataclass(frozen=True)
class ActionCreateInput:
    """Input payload for appending one action to a case timeline."""

    action_id: UUID
    case_id: UUID
    action_by_id: str
    sanction_type_id: UUID
    description: str
    created_at: datetime
    follow_up_date: date | None = None
    notes: str | None = None
    evidence_urls: list[str] = field(default_factory=list)
    is_completed: bool = False


@dataclass(frozen=True)
class ActionUpdateInput:
    """Partial update: only attributes not left as UNSET are written.

    ``None`` is a real value for nullable attributes (it clears them).
    """

    sanction_type_id: UUID | Unset = UNSET
    description: str | Unset = UNSET
    follow_up_date: date | None | Unset = UNSET
    notes: str | None | Unset = UNSET
    evidence_urls: list[str] | Unset = UNSET
    is_completed: bool | Unset = UNSET

    def provided(self) -> dict[str, Any]:
        """Return only the attributes the caller supplied."""

        return provided_fields(self)


@dataclass(frozen=True)
class ActionRecord:
    """Action persistence model, including edit and soft-delete audit stamps."""

    action_id: UUID
    case_id: UUID
    sequence_no: int
    sanction_type_id: UUID
    action_type: str
    description: str
    follow_up_date: date | None
    notes: str | None
    evidence_urls: list[str]
    is_completed: bool
    action_by_id: str
    created_at: datetime
    edited_by_id: str | None = None
    edited_at: datetime | None = None
    deleted_by_id: str | None = None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class SanctionTypeSnapshot:
    """Sanction-type catalog fields resolved at listing time."""

    sanction_type_id: UUID
    name: str
    level: SanctionLevel
    duration_days: int | None


@dataclass(frozen=True)
class ActionTimelineEntry:
    """One listed action with catalog and actor names resolved at call time."""

    action: ActionRecord
    sanction_type: SanctionTypeSnapshot | None
    action_by_name: str | None
    edited_by_name: str | None


class ActionTimelineStorePort(Protocol):
    """Async action ledger contract, bound to one unit of work."""

    async def append(self, payload: ActionCreateInput) -> ActionRecord:
        """Insert a new, non-deleted action and return it."""

    async def edit(
        self,
        *,
        action_id: UUID,
        actor_id: str,
        update: ActionUpdateInput,
        edited_at: datetime,
    ) -> ActionRecord:
        """Apply provided fields and stamp edit audit; ConflictError if deleted."""

    async def soft_delete(
        self,
        *,
        action_id: UUID,
        actor_id: str,
        deleted_at: datetime,
    ) -> ActionRecord:
        """Stamp delete audit; ConflictError if already deleted."""

    async def get_action(self, *, action_id: UUID) -> ActionRecord | None:
        """Return one action by id, deleted or not."""

    async def list_for_case(self, *, case_id: UUID) -> list[ActionTimelineEntry]:
        """Return non-deleted actions newest first with resolved names."""

    async def list_records_for_case(self, *, case_id: UUID) -> list[ActionRecord]:
        """Return non-deleted action records newest first."""

    async def latest_for_case(self, *, case_id: UUID) -> ActionRecord | None:
        """Return the most recently created non-deleted action."""
