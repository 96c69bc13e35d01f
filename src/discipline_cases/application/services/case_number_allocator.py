"""Allocation of sequential, year-scoped case numbers."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo

from discipline_cases.application.ports.case_number_sequence_port import (
    CaseNumberSequencePort,
)
from discipline_cases.domain.case_number import format_case_number


class CaseNumberAllocator:
    """Mint `VC-<year>-<seq>` identifiers from a transactional per-year counter.

    The counter increment must share the transaction that inserts the case so a
    rolled-back insert also rolls back its sequence value.
    """

    def __init__(self, *, sequences: CaseNumberSequencePort, timezone: tzinfo = UTC) -> None:
        self._sequences = sequences
        self._timezone = timezone

    def year_of(self, now: datetime) -> int:
        """Return the calendar year of now in the allocator timezone."""

        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return now.astimezone(self._timezone).year

    async def next_case_number(self, *, now: datetime) -> str:
        """Return the next case number for the calendar year of now."""

        year = self.year_of(now)
        sequence = await self._sequences.increment(year=year)
        return format_case_number(year=year, sequence=sequence)
