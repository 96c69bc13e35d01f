"""SQLAlchemy adapter for the append-only case action timeline."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, NoReturn, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from discipline_cases.application.ports.action_timeline_port import (
    ACTION_TYPE_SANCTION,
    ActionCreateInput,
    ActionRecord,
    ActionTimelineEntry,
    ActionTimelineStorePort,
    ActionUpdateInput,
    SanctionTypeSnapshot,
)
from discipline_cases.domain.errors import ConflictError, NotFoundError
from discipline_cases.domain.sanction_level import SanctionLevel
from discipline_cases.infrastructure.db.metadata import actors, case_actions, sanction_types

_action_by = actors.alias("action_by")
_edited_by = actors.alias("edited_by")


def _to_action_record(row: RowMapping) -> ActionRecord:
    return ActionRecord(
        action_id=cast(UUID, row["action_id"]),
        case_id=cast(UUID, row["case_id"]),
        sequence_no=int(row["id"]),
        sanction_type_id=cast(UUID, row["sanction_type_id"]),
        action_type=cast(str, row["action_type"]),
        description=cast(str, row["description"]),
        follow_up_date=cast(date | None, row["follow_up_date"]),
        notes=cast(str | None, row["notes"]),
        evidence_urls=list(cast(list[str], row["evidence_urls"] or [])),
        is_completed=bool(row["is_completed"]),
        action_by_id=cast(str, row["action_by_id"]),
        created_at=cast(datetime, row["created_at"]),
        edited_by_id=cast(str | None, row["edited_by_id"]),
        edited_at=cast(datetime | None, row["edited_at"]),
        deleted_by_id=cast(str | None, row["deleted_by_id"]),
        deleted_at=cast(datetime | None, row["deleted_at"]),
    )


def _to_timeline_entry(row: RowMapping) -> ActionTimelineEntry:
    snapshot = None
    if row["sanction_type_name"] is not None:
        snapshot = SanctionTypeSnapshot(
            sanction_type_id=cast(UUID, row["sanction_type_id"]),
            name=cast(str, row["sanction_type_name"]),
            level=SanctionLevel(cast(str, row["sanction_type_level"])),
            duration_days=cast(int | None, row["sanction_type_duration_days"]),
        )
    return ActionTimelineEntry(
        action=_to_action_record(row),
        sanction_type=snapshot,
        action_by_name=cast(str | None, row["action_by_name"]),
        edited_by_name=cast(str | None, row["edited_by_name"]),
    )


def _live_actions_for_case(case_id: UUID) -> sa.ColumnElement[bool]:
    return sa.and_(case_actions.c.case_id == case_id, case_actions.c.deleted_at.is_(None))


_NEWEST_FIRST = (case_actions.c.created_at.desc(), case_actions.c.id.desc())


class SqlAlchemyActionTimelineStore(ActionTimelineStorePort):
    """Action ledger bound to the session of one unit of work.

    Rows are never deleted: soft delete stamps ``deleted_at`` and every read
    path filters on ``deleted_at IS NULL`` except lookups by id.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, payload: ActionCreateInput) -> ActionRecord:
        """Insert one action row and return it."""

        statement = (
            sa.insert(case_actions)
            .values(
                action_id=payload.action_id,
                case_id=payload.case_id,
                sanction_type_id=payload.sanction_type_id,
                action_type=ACTION_TYPE_SANCTION,
                description=payload.description,
                follow_up_date=payload.follow_up_date,
                notes=payload.notes,
                evidence_urls=list(payload.evidence_urls),
                is_completed=payload.is_completed,
                action_by_id=payload.action_by_id,
                created_at=payload.created_at,
            )
            .returning(*case_actions.c)
        )
        result = await self._session.execute(statement)
        return _to_action_record(result.mappings().one())

    async def edit(
        self,
        *,
        action_id: UUID,
        actor_id: str,
        update: ActionUpdateInput,
        edited_at: datetime,
    ) -> ActionRecord:
        """Write only supplied fields; always stamp edited_by_id and edited_at."""

        values: dict[str, Any] = dict(update.provided())
        if "evidence_urls" in values:
            values["evidence_urls"] = list(values["evidence_urls"])
        values["edited_by_id"] = actor_id
        values["edited_at"] = edited_at

        statement = (
            sa.update(case_actions)
            .where(
                case_actions.c.action_id == action_id,
                case_actions.c.deleted_at.is_(None),
            )
            .values(**values)
            .returning(*case_actions.c)
        )
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            await self._raise_missing_or_deleted(action_id=action_id, verb="edit")
        return _to_action_record(row)

    async def soft_delete(
        self,
        *,
        action_id: UUID,
        actor_id: str,
        deleted_at: datetime,
    ) -> ActionRecord:
        """Stamp the tombstone once; a second delete is a conflict."""

        statement = (
            sa.update(case_actions)
            .where(
                case_actions.c.action_id == action_id,
                case_actions.c.deleted_at.is_(None),
            )
            .values(deleted_by_id=actor_id, deleted_at=deleted_at)
            .returning(*case_actions.c)
        )
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            await self._raise_missing_or_deleted(action_id=action_id, verb="delete")
        return _to_action_record(row)

    async def get_action(self, *, action_id: UUID) -> ActionRecord | None:
        """Return one action by id, including soft-deleted rows."""

        statement = sa.select(*case_actions.c).where(case_actions.c.action_id == action_id)
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_action_record(row)

    async def list_for_case(self, *, case_id: UUID) -> list[ActionTimelineEntry]:
        """Return live actions newest first with sanction type and actor names."""

        statement = (
            sa.select(
                *case_actions.c,
                sanction_types.c.name.label("sanction_type_name"),
                sanction_types.c.level.label("sanction_type_level"),
                sanction_types.c.duration_days.label("sanction_type_duration_days"),
                _action_by.c.display_name.label("action_by_name"),
                _edited_by.c.display_name.label("edited_by_name"),
            )
            .select_from(
                case_actions.outerjoin(
                    sanction_types,
                    sanction_types.c.id == case_actions.c.sanction_type_id,
                )
                .outerjoin(_action_by, _action_by.c.id == case_actions.c.action_by_id)
                .outerjoin(_edited_by, _edited_by.c.id == case_actions.c.edited_by_id)
            )
            .where(_live_actions_for_case(case_id))
            .order_by(*_NEWEST_FIRST)
        )
        result = await self._session.execute(statement)
        return [_to_timeline_entry(row) for row in result.mappings().all()]

    async def list_records_for_case(self, *, case_id: UUID) -> list[ActionRecord]:
        """Return live action records newest first."""

        statement = (
            sa.select(*case_actions.c)
            .where(_live_actions_for_case(case_id))
            .order_by(*_NEWEST_FIRST)
        )
        result = await self._session.execute(statement)
        return [_to_action_record(row) for row in result.mappings().all()]

    async def latest_for_case(self, *, case_id: UUID) -> ActionRecord | None:
        """Return the most recently created live action."""

        statement = (
            sa.select(*case_actions.c)
            .where(_live_actions_for_case(case_id))
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_action_record(row)

    async def _raise_missing_or_deleted(self, *, action_id: UUID, verb: str) -> NoReturn:
        existing = await self.get_action(action_id=action_id)
        if existing is None:
            raise NotFoundError(f"action not found: {action_id}")
        raise ConflictError(f"cannot {verb} action {action_id}: it has been deleted")
