"""Port for case persistence operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol
from uuid import UUID

from discipline_cases.application.ports.partial_update import UNSET, Unset, provided_fields
from discipline_cases.domain.case_status import CaseStatus


class DuplicateCaseNumberError(ValueError):
    """Raised when a case with the same case number already exists."""

    def __init__(self, case_number: str) -> None:
        super().__init__(f"Duplicate case_number {case_number}")
        self.case_number = case_number


@dataclass(frozen=True)
class CaseCreateInput:
    """Input payload for creating a case row."""

    case_id: UUID
    case_number: str
    student_id: UUID
    violation_id: UUID
    class_level: str
    description: str
    violation_date: date
    input_by_id: str
    created_at: datetime
    status: CaseStatus = CaseStatus.PENDING
    location: str | None = None
    witnesses: str | None = None
    evidence_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CaseUpdateInput:
    """Partial edit of descriptive case fields; status is never written here."""

    class_level: str | Unset = UNSET
    description: str | Unset = UNSET
    violation_date: date | Unset = UNSET
    location: str | None | Unset = UNSET
    witnesses: str | None | Unset = UNSET
    evidence_urls: list[str] | Unset = UNSET

    def provided(self) -> dict[str, Any]:
        """Return only the attributes the caller supplied."""

        return provided_fields(self)

@dataclass(frozen=True)
class CaseRecord:
    """Case persistence model used across repository boundaries."""

    case_id: UUID
    case_number: str
    student_id: UUID
    violation_id: UUID
    class_level: str
    description: str
    violation_date: date
    location: str | None
    witnesses: str | None
    evidence_urls: list[str]
    status: CaseStatus
    input_by_id: str
    row_version: int
    created_at: datetime
    updated_at: datetime


class CaseRepositoryPort(Protocol):
    """Async case repository contract, bound to one unit of work."""

    async def create_case(self, payload: CaseCreateInput) -> CaseRecord:
        """Create a case row or raise DuplicateCaseNumberError."""

    async def get_case(self, *, case_id: UUID) -> CaseRecord | None:
        """Retrieve case by id."""

    async def lock_case(self, *, case_id: UUID) -> CaseRecord | None:
        """Bump row_version to take the per-case write lock; None when absent."""

    async def lock_case_for_action(self, *, action_id: UUID) -> CaseRecord | None:
        """Lock the case owning action_id; None when the action is absent."""

    async def update_case(
        self,
        *,
        case_id: UUID,
        update: CaseUpdateInput,
        updated_at: datetime,
    ) -> CaseRecord:
        """Write supplied descriptive fields and touch updated_at."""

    async def update_status(
        self,
        *,
        case_id: UUID,
        status: CaseStatus,
        updated_at: datetime,
    ) -> None:
        """Update case status and touch updated_at timestamp."""

    async def list_cases(self, *, status: CaseStatus | None = None) -> list[CaseRecord]:
        """Return cases newest first, optionally filtered by status."""

    async def count_by_status(self) -> dict[CaseStatus, int]:
        """Return case totals grouped by status."""
