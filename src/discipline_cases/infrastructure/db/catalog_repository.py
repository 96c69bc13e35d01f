"""SQLAlchemy adapter for read-only master-data catalog lookups."""

from __future__ import annotations

from typing import cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession

from discipline_cases.application.ports.catalog_port import (
    CatalogPort,
    SanctionTypeRecord,
    StudentRecord,
    ViolationRecord,
)
from discipline_cases.domain.sanction_level import SanctionLevel
from discipline_cases.infrastructure.db.metadata import (
    sanction_types,
    students,
    violation_sanction_types,
    violations,
)


def _to_sanction_type_record(row: RowMapping) -> SanctionTypeRecord:
    return SanctionTypeRecord(
        sanction_type_id=cast(UUID, row["id"]),
        name=cast(str, row["name"]),
        level=SanctionLevel(cast(str, row["level"])),
        duration_days=cast(int | None, row["duration_days"]),
        is_active=bool(row["is_active"]),
    )


class SqlAlchemyCatalogRepository(CatalogPort):
    """Catalog lookups bound to the session of one unit of work."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_student(self, *, student_id: UUID) -> StudentRecord | None:
        statement = sa.select(students).where(students.c.id == student_id)
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return StudentRecord(
            student_id=cast(UUID, row["id"]),
            name=cast(str, row["name"]),
            nis=cast(str, row["nis"]),
            is_active=bool(row["is_active"]),
        )

    async def get_violation(self, *, violation_id: UUID) -> ViolationRecord | None:
        """Return violation with its allowed sanction type ids."""

        statement = sa.select(violations).where(violations.c.id == violation_id)
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None

        allowed_statement = sa.select(violation_sanction_types.c.sanction_type_id).where(
            violation_sanction_types.c.violation_id == violation_id
        )
        allowed_result = await self._session.execute(allowed_statement)
        return ViolationRecord(
            violation_id=cast(UUID, row["id"]),
            name=cast(str, row["name"]),
            is_active=bool(row["is_active"]),
            allowed_sanction_type_ids=frozenset(
                cast(UUID, value) for value in allowed_result.scalars().all()
            ),
        )

    async def get_sanction_type(self, *, sanction_type_id: UUID) -> SanctionTypeRecord | None:
        statement = sa.select(sanction_types).where(sanction_types.c.id == sanction_type_id)
        result = await self._session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_sanction_type_record(row)

    async def list_sanction_types(
        self,
        *,
        sanction_type_ids: frozenset[UUID],
    ) -> list[SanctionTypeRecord]:
        if not sanction_type_ids:
            return []

        statement = (
            sa.select(sanction_types)
            .where(sanction_types.c.id.in_(sorted(sanction_type_ids, key=str)))
            .order_by(sanction_types.c.name, sanction_types.c.id)
        )
        result = await self._session.execute(statement)
        return [_to_sanction_type_record(row) for row in result.mappings().all()]
