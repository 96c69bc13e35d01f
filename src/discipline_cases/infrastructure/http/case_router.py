"""FastAPI router for case lifecycle and action timeline endpoints."""

from __future__ import annotations

from typing import Any, Final
from uuid import UUID

from fastapi import APIRouter, Header, HTTPException, Response
from pydantic import BaseModel

from discipline_cases.application.dto.case_models import (
    ActionResponse,
    AppendActionRequest,
    CaseResponse,
    CaseStatsResponse,
    EditActionRequest,
    ErrorDetail,
    OpenCaseRequest,
    SanctionTypeResponse,
    TimelineEntryResponse,
    UpdateCaseRequest,
)
from discipline_cases.application.ports.action_timeline_port import ActionUpdateInput
from discipline_cases.application.ports.case_repository_port import CaseUpdateInput
from discipline_cases.application.services.case_lifecycle_service import CaseLifecycleService
from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.domain.errors import (
    CaseEngineError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
    ValidationError,
)

ACTOR_HEADER: Final = "X-Actor-Id"
_NON_NULLABLE_EDIT_FIELDS: Final = frozenset(
    {"sanction_type_id", "description", "evidence_urls", "is_completed"}
)
_NON_NULLABLE_CASE_FIELDS: Final = frozenset(
    {"class_level", "description", "violation_date", "evidence_urls"}
)
_STATUS_BY_ERROR: Final[tuple[tuple[type[CaseEngineError], int], ...]] = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (ConflictError, 409),
    (UnauthorizedError, 401),
    (UnavailableError, 503),
)


def to_http_exception(error: CaseEngineError) -> HTTPException:
    """Map a case engine error to an HTTP error carrying kind and message."""

    status_code = 500
    for error_type, candidate in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = candidate
            break
    detail = ErrorDetail(kind=error.kind, message=error.message)
    return HTTPException(status_code=status_code, detail=detail.model_dump())


def _present_fields(payload: BaseModel, *, non_nullable: frozenset[str]) -> dict[str, Any]:
    """Keep only fields present in the request body."""

    provided: dict[str, Any] = {}
    for name in payload.model_fields_set:
        value = getattr(payload, name)
        if value is None and name in non_nullable:
            raise ValidationError(f"{name} cannot be null")
        provided[name] = value
    return provided


def _to_update_input(payload: EditActionRequest) -> ActionUpdateInput:
    provided = _present_fields(payload, non_nullable=_NON_NULLABLE_EDIT_FIELDS)
    return ActionUpdateInput(**provided)


def _to_case_update_input(payload: UpdateCaseRequest) -> CaseUpdateInput:
    provided = _present_fields(payload, non_nullable=_NON_NULLABLE_CASE_FIELDS)
    return CaseUpdateInput(**provided)


def build_case_router(*, lifecycle_service: CaseLifecycleService) -> APIRouter:
    """Build router exposing case and action timeline endpoints."""

    router = APIRouter(tags=["cases"])

    @router.post("/cases", response_model=CaseResponse, status_code=201)
    async def open_case(
        payload: OpenCaseRequest,
        actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    ) -> CaseResponse:
        try:
            case = await lifecycle_service.open_case(
                actor_id=actor_id or "",
                student_id=payload.student_id,
                violation_id=payload.violation_id,
                class_level=payload.class_level,
                description=payload.description,
                violation_date=payload.violation_date,
                location=payload.location,
                witnesses=payload.witnesses,
                evidence_urls=payload.evidence_urls,
            )
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return CaseResponse.from_record(case)

    @router.get("/cases", response_model=list[CaseResponse])
    async def list_cases(status: CaseStatus | None = None) -> list[CaseResponse]:
        try:
            cases = await lifecycle_service.list_cases(status=status)
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return [CaseResponse.from_record(case) for case in cases]

    @router.get("/cases/stats", response_model=CaseStatsResponse)
    async def case_stats() -> CaseStatsResponse:
        try:
            counts = await lifecycle_service.count_cases_by_status()
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return CaseStatsResponse.from_counts(counts)

    @router.get("/cases/{case_id}", response_model=CaseResponse)
    async def get_case(case_id: UUID) -> CaseResponse:
        try:
            case = await lifecycle_service.get_case(case_id=case_id)
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return CaseResponse.from_record(case)

    @router.patch("/cases/{case_id}", response_model=CaseResponse)
    async def update_case(
        case_id: UUID,
        payload: UpdateCaseRequest,
        actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    ) -> CaseResponse:
        try:
            case = await lifecycle_service.update_case(
                case_id=case_id,
                actor_id=actor_id or "",
                update=_to_case_update_input(payload),
            )
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return CaseResponse.from_record(case)

    @router.get("/cases/{case_id}/actions", response_model=list[TimelineEntryResponse])
    async def list_actions(case_id: UUID) -> list[TimelineEntryResponse]:
        try:
            entries = await lifecycle_service.get_case_actions(case_id=case_id)
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return [TimelineEntryResponse.from_entry(entry) for entry in entries]

    @router.get("/cases/{case_id}/actions/latest", response_model=ActionResponse | None)
    async def latest_action(case_id: UUID) -> ActionResponse | None:
        try:
            action = await lifecycle_service.get_latest_action(case_id=case_id)
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        if action is None:
            return None
        return ActionResponse.from_record(action)

    @router.post("/cases/{case_id}/actions", response_model=ActionResponse, status_code=201)
    async def append_action(
        case_id: UUID,
        payload: AppendActionRequest,
        actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    ) -> ActionResponse:
        try:
            action = await lifecycle_service.append_action(
                case_id=case_id,
                actor_id=actor_id or "",
                sanction_type_id=payload.sanction_type_id,
                description=payload.description,
                follow_up_date=payload.follow_up_date,
                evidence_urls=payload.evidence_urls,
                notes=payload.notes,
                is_completed=payload.is_completed,
            )
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return ActionResponse.from_record(action)

    @router.get("/actions/{action_id}", response_model=ActionResponse)
    async def get_action(action_id: UUID) -> ActionResponse:
        try:
            action = await lifecycle_service.get_action(action_id=action_id)
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return ActionResponse.from_record(action)

    @router.patch("/actions/{action_id}", response_model=ActionResponse)
    async def edit_action(
        action_id: UUID,
        payload: EditActionRequest,
        actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    ) -> ActionResponse:
        try:
            action = await lifecycle_service.edit_action(
                action_id=action_id,
                actor_id=actor_id or "",
                update=_to_update_input(payload),
            )
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return ActionResponse.from_record(action)

    @router.delete("/actions/{action_id}", status_code=204)
    async def delete_action(
        action_id: UUID,
        actor_id: str | None = Header(default=None, alias=ACTOR_HEADER),
    ) -> Response:
        try:
            await lifecycle_service.delete_action(action_id=action_id, actor_id=actor_id or "")
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return Response(status_code=204)

    @router.get(
        "/violations/{violation_id}/sanction-types",
        response_model=list[SanctionTypeResponse],
    )
    async def eligible_sanction_types(violation_id: UUID) -> list[SanctionTypeResponse]:
        try:
            records = await lifecycle_service.list_eligible_sanction_types(
                violation_id=violation_id
            )
        except CaseEngineError as exc:
            raise to_http_exception(exc) from exc
        return [SanctionTypeResponse.from_record(record) for record in records]

    return router
