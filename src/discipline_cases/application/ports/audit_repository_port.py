"""Port for append-only case audit events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID


@dataclass(frozen=True)
class AuditEventCreateInput:
    """Input payload for inserting an audit event."""

    case_id: UUID
    event_type: str
    actor_user_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class AuditRepositoryPort(Protocol):
    """Async audit repository contract."""

    async def append_event(self, payload: AuditEventCreateInput) -> int:
        """Append an audit event and return its numeric id."""
