"""Port for read-only master-data catalogs consumed by the case engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from discipline_cases.domain.sanction_level import SanctionLevel


@dataclass(frozen=True)
class StudentRecord:
    """Student catalog row."""

    student_id: UUID
    name: str
    nis: str
    is_active: bool


@dataclass(frozen=True)
class ViolationRecord:
    """Violation catalog row with its configured allowed sanction types."""

    violation_id: UUID
    name: str
    is_active: bool
    allowed_sanction_type_ids: frozenset[UUID]


@dataclass(frozen=True)
class SanctionTypeRecord:
    """Sanction-type catalog row."""

    sanction_type_id: UUID
    name: str
    level: SanctionLevel
    duration_days: int | None
    is_active: bool


class CatalogPort(Protocol):
    """Async read-only catalog lookups."""

    async def get_student(self, *, student_id: UUID) -> StudentRecord | None:
        """Return student by id."""

    async def get_violation(self, *, violation_id: UUID) -> ViolationRecord | None:
        """Return violation by id including allowed sanction type ids."""

    async def get_sanction_type(self, *, sanction_type_id: UUID) -> SanctionTypeRecord | None:
        """Return sanction type by id."""

    async def list_sanction_types(
        self,
        *,
        sanction_type_ids: frozenset[UUID],
    ) -> list[SanctionTypeRecord]:
        """Return sanction types for the given ids ordered by name."""
