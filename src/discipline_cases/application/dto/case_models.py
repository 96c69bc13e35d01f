"""Pydantic request/response models for case lifecycle endpoints."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from discipline_cases.application.ports.action_timeline_port import (
    ActionRecord,
    ActionTimelineEntry,
)
from discipline_cases.application.ports.case_repository_port import CaseRecord
from discipline_cases.application.ports.catalog_port import SanctionTypeRecord
from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.domain.sanction_level import SanctionLevel


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class OpenCaseRequest(StrictModel):
    """Payload to open a new discipline case."""

    student_id: UUID
    violation_id: UUID
    class_level: str = Field(min_length=1)
    description: str = Field(min_length=1)
    violation_date: date
    location: str | None = None
    witnesses: str | None = None
    evidence_urls: list[str] = Field(default_factory=list)


class AppendActionRequest(StrictModel):
    """Payload to append one action to a case timeline."""

    sanction_type_id: UUID
    description: str = Field(min_length=1)
    follow_up_date: date | None = None
    evidence_urls: list[str] = Field(default_factory=list)
    notes: str | None = None
    is_completed: bool = False


class EditActionRequest(StrictModel):
    """Partial edit payload; only fields present in the body are applied."""

    sanction_type_id: UUID | None = None
    description: str | None = None
    follow_up_date: date | None = None
    evidence_urls: list[str] | None = None
    notes: str | None = None
    is_completed: bool | None = None


class UpdateCaseRequest(StrictModel):
    """Partial case edit; status and case number are not editable here."""

    class_level: str | None = None
    description: str | None = None
    violation_date: date | None = None
    location: str | None = None
    witnesses: str | None = None
    evidence_urls: list[str] | None = None


class CaseResponse(StrictModel):
    """Case representation returned by case endpoints."""

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
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: CaseRecord) -> CaseResponse:
        return cls(
            case_id=record.case_id,
            case_number=record.case_number,
            student_id=record.student_id,
            violation_id=record.violation_id,
            class_level=record.class_level,
            description=record.description,
            violation_date=record.violation_date,
            location=record.location,
            witnesses=record.witnesses,
            evidence_urls=record.evidence_urls,
            status=record.status,
            input_by_id=record.input_by_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ActionResponse(StrictModel):
    """Action representation including edit and soft-delete audit stamps."""

    action_id: UUID
    case_id: UUID
    sanction_type_id: UUID
    action_type: str
    description: str
    follow_up_date: date | None
    notes: str | None
    evidence_urls: list[str]
    is_completed: bool
    action_by_id: str
    created_at: datetime
    edited_by_id: str | None
    edited_at: datetime | None
    deleted_by_id: str | None
    deleted_at: datetime | None

    @classmethod
    def from_record(cls, record: ActionRecord) -> ActionResponse:
        return cls(
            action_id=record.action_id,
            case_id=record.case_id,
            sanction_type_id=record.sanction_type_id,
            action_type=record.action_type,
            description=record.description,
            follow_up_date=record.follow_up_date,
            notes=record.notes,
            evidence_urls=record.evidence_urls,
            is_completed=record.is_completed,
            action_by_id=record.action_by_id,
            created_at=record.created_at,
            edited_by_id=record.edited_by_id,
            edited_at=record.edited_at,
            deleted_by_id=record.deleted_by_id,
            deleted_at=record.deleted_at,
        )


class SanctionTypeSummary(StrictModel):
    """Sanction type fields attached to timeline entries."""

    sanction_type_id: UUID
    name: str
    level: SanctionLevel
    duration_days: int | None


class TimelineEntryResponse(ActionResponse):
    """Listed action with sanction type and actor names resolved at read time."""

    sanction_type: SanctionTypeSummary | None
    action_by_name: str | None
    edited_by_name: str | None

    @classmethod
    def from_entry(cls, entry: ActionTimelineEntry) -> TimelineEntryResponse:
        base = ActionResponse.from_record(entry.action).model_dump()
        sanction_type = None
        if entry.sanction_type is not None:
            sanction_type = SanctionTypeSummary(
                sanction_type_id=entry.sanction_type.sanction_type_id,
                name=entry.sanction_type.name,
                level=entry.sanction_type.level,
                duration_days=entry.sanction_type.duration_days,
            )
        return cls(
            **base,
            sanction_type=sanction_type,
            action_by_name=entry.action_by_name,
            edited_by_name=entry.edited_by_name,
        )


class SanctionTypeResponse(SanctionTypeSummary):
    """Sanction type eligible for a violation."""

    @classmethod
    def from_record(cls, record: SanctionTypeRecord) -> SanctionTypeResponse:
        return cls(
            sanction_type_id=record.sanction_type_id,
            name=record.name,
            level=record.level,
            duration_days=record.duration_days,
        )


class CaseStatsResponse(StrictModel):
    """Per-status case totals."""

    total: int = Field(ge=0)
    pending: int = Field(ge=0)
    proses: int = Field(ge=0)
    selesai: int = Field(ge=0)
    dibatalkan: int = Field(ge=0)

    @classmethod
    def from_counts(cls, counts: dict[CaseStatus, int]) -> CaseStatsResponse:
        return cls(
            total=sum(counts.values()),
            pending=counts.get(CaseStatus.PENDING, 0),
            proses=counts.get(CaseStatus.PROSES, 0),
            selesai=counts.get(CaseStatus.SELESAI, 0),
            dibatalkan=counts.get(CaseStatus.DIBATALKAN, 0),
        )


class ErrorDetail(StrictModel):
    """Machine-readable error kind plus message shown to users verbatim."""

    kind: str
    message: str
