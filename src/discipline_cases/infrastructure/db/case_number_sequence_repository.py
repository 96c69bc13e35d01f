"""SQLAlchemy adapter for the transactional per-year case number counter."""

from __future__ import annotations

from typing import cast

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from discipline_cases.application.ports.case_number_sequence_port import (
    CaseNumberSequencePort,
)
from discipline_cases.application.ports.unit_of_work_port import TransientPersistenceError
from discipline_cases.domain.case_number import CASE_NUMBER_PREFIX, parse_case_number
from discipline_cases.domain.errors import ValidationError
from discipline_cases.infrastructure.db.metadata import case_number_sequences, cases


class SqlAlchemyCaseNumberSequenceRepository(CaseNumberSequencePort):
    """Counter rows keyed by year; the UPDATE row lock serializes allocators."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def increment(self, *, year: int) -> int:
        """Increment the year's counter, creating it on first use."""

        statement = (
            sa.update(case_number_sequences)
            .where(case_number_sequences.c.year == year)
            .values(last_value=case_number_sequences.c.last_value + 1)
            .returning(case_number_sequences.c.last_value)
        )
        result = await self._session.execute(statement)
        value = result.scalar_one_or_none()
        if value is not None:
            return int(value)

        next_value = await self._highest_existing_sequence(year=year) + 1
        insert = sa.insert(case_number_sequences).values(year=year, last_value=next_value)
        try:
            await self._session.execute(insert)
        except IntegrityError as error:
            raise TransientPersistenceError(
                f"case number counter for {year} was created concurrently"
            ) from error
        return next_value

    async def sync_with_existing(self, *, year: int) -> int:
        """Move the counter past case numbers already stored for the year.

        The no-op update comes first so the counter row stays write-locked while
        stored numbers are scanned.
        """

        lock = (
            sa.update(case_number_sequences)
            .where(case_number_sequences.c.year == year)
            .values(last_value=case_number_sequences.c.last_value)
            .returning(case_number_sequences.c.last_value)
        )
        result = await self._session.execute(lock)
        current = result.scalar_one_or_none()

        highest = await self._highest_existing_sequence(year=year)
        if current is None:
            return highest
        if highest <= int(current):
            return int(current)

        await self._session.execute(
            sa.update(case_number_sequences)
            .where(case_number_sequences.c.year == year)
            .values(last_value=highest)
        )
        return highest

    async def _highest_existing_sequence(self, *, year: int) -> int:
        """Seed a new year's counter from case numbers already stored for it."""

        statement = sa.select(cases.c.case_number).where(
            cases.c.case_number.like(f"{CASE_NUMBER_PREFIX}-{year:04d}-%")
        )
        result = await self._session.execute(statement)

        highest = 0
        for value in result.scalars().all():
            try:
                parsed = parse_case_number(cast(str, value))
            except ValidationError:
                continue
            highest = max(highest, parsed.sequence)
        return highest
