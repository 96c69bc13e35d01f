"""SQLAlchemy adapter for case repository operations."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from discipline_cases.application.ports.case_repository_port import (
    CaseCreateInput,
    CaseRecord,
    CaseRepositoryPort,
    CaseUpdateInput,
    DuplicateCaseNumberError,
)
from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.infrastructure.db.metadata import case_actions, cases

_CASE_COLUMNS = (
    cases.c.case_id,
    cases.c.case_number,
    cases.c.student_id,
    cases.c.violation_id,
    cases.c.class_level,
    cases.c.description,
    cases.c.violation_date,
    cases.c.location,
    cases.c.witnesses,
    cases.c.evidence_urls,
    cases.c.status,
    cases.c.input_by_id,
    cases.c.row_version,
    cases.c.created_at,
    cases.c.updated_at,
)


def _is_duplicate_case_number_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "case_number" in message


def _to_case_record(row: RowMapping) -> CaseRecord:
    return CaseRecord(
        case_id=cast(UUID, row["case_id"]),
        case_number=cast(str, row["case_number"]),
        student_id=cast(UUID, row["student_id"]),
        violation_id=cast(UUID, row["violation_id"]),
        class_level=cast(str, row["class_level"]),
        description=cast(str, row["description"]),
        violation_date=cast(date, row["violation_date"]),
        location=cast(str | None, row["location"]),
        witnesses=cast(str | None, row["witnesses"]),
        evidence_urls=list(cast(list[str], row["evidence_urls"] or [])),
        status=CaseStatus(cast(str, row["status"])),
        input_by_id=cast(str, row["input_by_id"]),
        row_version=int(row["row_version"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )


class SqlAlchemyCaseRepository(CaseRepositoryPort):
    """Case repository bound to the session of one unit of work."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_case(self, payload: CaseCreateInput) -> CaseRecord:
        """Insert a new case row and return the created case record."""

        statement = (
            sa.insert(cases)
            .values(
                case_id=payload.case_id,
                case_number=payload.case_number,
                student_id=payload.student_id,
                violation_id=payload.violation_id,
                class_level=payload.class_level,
                description=payload.description,
                violation_date=payload.violation_date,
                location=payload.location,
                witnesses=payload.witnesses,
                evidence_urls=list(payload.evidence_urls),
                status=payload.status.value,
                input_by_id=payload.input_by_id,
                created_at=payload.created_at,
                updated_at=payload.created_at,
            )
            .returning(*_CASE_COLUMNS)
        )

        try:
            result = await self._session.execute(statement)
        except IntegrityError as error:
            if _is_duplicate_case_number_error(error):
                raise DuplicateCaseNumberError(payload.case_number) from error
            raise

        return _to_case_record(result.mappings().one())

    async def get_case(self, *, case_id: UUID) -> CaseRecord | None:
        """Return case by id when present."""

        statement = sa.select(*_CASE_COLUMNS).where(cases.c.case_id == case_id)
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_case_record(row)

    async def lock_case(self, *, case_id: UUID) -> CaseRecord | None:
        """Bump row_version so the case row stays write-locked until commit."""

        statement = (
            sa.update(cases)
            .where(cases.c.case_id == case_id)
            .values(row_version=cases.c.row_version + 1)
            .returning(*_CASE_COLUMNS)
        )
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_case_record(row)

    async def lock_case_for_action(self, *, action_id: UUID) -> CaseRecord | None:
        """Lock the case owning one action with a single write statement."""

        owning_case_id = (
            sa.select(case_actions.c.case_id)
            .where(case_actions.c.action_id == action_id)
            .scalar_subquery()
        )
        statement = (
            sa.update(cases)
            .where(cases.c.case_id == owning_case_id)
            .values(row_version=cases.c.row_version + 1)
            .returning(*_CASE_COLUMNS)
        )
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_case_record(row)

    async def update_case(
        self,
        *,
        case_id: UUID,
        update: CaseUpdateInput,
        updated_at: datetime,
    ) -> CaseRecord:
        """Write supplied descriptive fields; status stays untouched."""

        values: dict[str, Any] = dict(update.provided())
        if "evidence_urls" in values:
            values["evidence_urls"] = list(values["evidence_urls"])
        values["updated_at"] = updated_at

        statement = (
            sa.update(cases)
            .where(cases.c.case_id == case_id)
            .values(**values)
            .returning(*_CASE_COLUMNS)
        )
        result = await self._session.execute(statement)
        return _to_case_record(result.mappings().one())

    async def update_status(
        self,
        *,
        case_id: UUID,
        status: CaseStatus,
        updated_at: datetime,
    ) -> None:
        """Persist projected status and touch updated_at."""

        statement = (
            sa.update(cases)
            .where(cases.c.case_id == case_id)
            .values(status=status.value, updated_at=updated_at)
        )
        await self._session.execute(statement)

    async def list_cases(self, *, status: CaseStatus | None = None) -> list[CaseRecord]:
        """Return cases newest first, optionally filtered by status."""

        statement = sa.select(*_CASE_COLUMNS).order_by(
            cases.c.created_at.desc(),
            cases.c.case_number.desc(),
        )
        if status is not None:
            statement = statement.where(cases.c.status == status.value)
        result = await self._session.execute(statement)
        return [_to_case_record(row) for row in result.mappings().all()]

    async def count_by_status(self) -> dict[CaseStatus, int]:
        """Return case totals grouped by status."""

        statement = sa.select(cases.c.status, sa.func.count()).group_by(cases.c.status)
        result = await self._session.execute(statement)

        counts: dict[CaseStatus, int] = {}
        for status, total in result.all():
            counts[CaseStatus(cast(Any, status))] = int(total)
        return counts
