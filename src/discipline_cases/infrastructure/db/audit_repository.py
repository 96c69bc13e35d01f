"""SQLAlchemy adapter for append-only case audit events."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from discipline_cases.application.ports.audit_repository_port import (
    AuditEventCreateInput,
    AuditRepositoryPort,
)
from discipline_cases.infrastructure.db.metadata import case_events


class SqlAlchemyAuditRepository(AuditRepositoryPort):
    """Audit repository writing inside the caller's unit of work."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append_event(self, payload: AuditEventCreateInput) -> int:
        """Insert an audit event row and return its numeric id."""

        statement = sa.insert(case_events).values(
            case_id=payload.case_id,
            actor_user_id=payload.actor_user_id,
            event_type=payload.event_type,
            payload=payload.payload,
        ).returning(case_events.c.id)

        result = await self._session.execute(statement)
        return int(result.scalar_one())
