"""Application service orchestrating case opening and action timeline mutations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from datetime import UTC, date, datetime, tzinfo
from typing import TypeVar
from uuid import UUID, uuid4

from discipline_cases.application.ports.action_timeline_port import (
    ActionCreateInput,
    ActionRecord,
    ActionTimelineEntry,
    ActionUpdateInput,
)
from discipline_cases.application.ports.audit_repository_port import AuditEventCreateInput
from discipline_cases.application.ports.case_repository_port import (
    CaseCreateInput,
    CaseRecord,
    CaseUpdateInput,
    DuplicateCaseNumberError,
)
from discipline_cases.application.ports.catalog_port import SanctionTypeRecord
from discipline_cases.application.ports.partial_update import UNSET
from discipline_cases.application.ports.unit_of_work_port import (
    CaseTransaction,
    CaseUnitOfWorkPort,
    TransientPersistenceError,
)
from discipline_cases.application.services.case_number_allocator import CaseNumberAllocator
from discipline_cases.application.services.sanction_eligibility_service import (
    SanctionEligibilityValidator,
)
from discipline_cases.domain.case_number import parse_case_number
from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
    ValidationError,
)
from discipline_cases.domain.status_projection import project_case_status

T = TypeVar("T")
SleepCallable = Callable[[float], Awaitable[None]]
NowCallable = Callable[[], datetime]
logger = logging.getLogger(__name__)

LAST_ACTION_COMPLETED_MESSAGE = (
    "last action already completed; edit it to reopen before adding a new one"
)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _require_actor(actor_id: str | None) -> str:
    if actor_id is None or not actor_id.strip():
        raise UnauthorizedError("actor identity is required")
    return actor_id.strip()


def _require_text(value: str, *, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{field_name} must not be blank")
    return stripped


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _clean_urls(urls: Sequence[str] | None) -> list[str]:
    if not urls:
        return []
    return [url.strip() for url in urls if url.strip()]


class CaseLifecycleService:
    """Open cases and mutate their action timelines under per-case serialization.

    Every mutation runs in one unit of work: the case row is locked first, the
    timeline is changed, status is re-projected from the full non-deleted
    timeline and persisted, and an audit event is appended. Transient
    persistence failures retry the whole unit of work a bounded number of times.
    """

    def __init__(
        self,
        *,
        unit_of_work: CaseUnitOfWorkPort,
        case_number_timezone: tzinfo = UTC,
        max_attempts: int = 5,
        retry_backoff_seconds: float = 0.05,
        sleep: SleepCallable = asyncio.sleep,
        now: NowCallable = _utc_now,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._uow = unit_of_work
        self._case_number_timezone = case_number_timezone
        self._max_attempts = max_attempts
        self._retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep
        self._now = now

    async def open_case(
        self,
        *,
        actor_id: str,
        student_id: UUID,
        violation_id: UUID,
        class_level: str,
        description: str,
        violation_date: date,
        location: str | None = None,
        witnesses: str | None = None,
        evidence_urls: Sequence[str] | None = None,
    ) -> CaseRecord:
        """Validate references, allocate a case number, and persist a PENDING case."""

        actor = _require_actor(actor_id)
        clean_class_level = _require_text(class_level, field_name="class_level")
        clean_description = _require_text(description, field_name="description")

        async def work(tx: CaseTransaction) -> CaseRecord:
            now = self._now()
            # Counter increment is the first write: it serializes concurrent openers.
            allocator = CaseNumberAllocator(
                sequences=tx.case_numbers,
                timezone=self._case_number_timezone,
            )
            case_number = await allocator.next_case_number(now=now)

            student = await tx.catalog.get_student(student_id=student_id)
            if student is None:
                raise NotFoundError(f"student not found: {student_id}")
            if not student.is_active:
                raise ValidationError(f"student is not active: {student_id}")

            violation = await tx.catalog.get_violation(violation_id=violation_id)
            if violation is None:
                raise NotFoundError(f"violation not found: {violation_id}")
            if not violation.is_active:
                raise ValidationError(f"violation is not active: {violation_id}")

            created = await tx.cases.create_case(
                CaseCreateInput(
                    case_id=uuid4(),
                    case_number=case_number,
                    student_id=student_id,
                    violation_id=violation_id,
                    class_level=clean_class_level,
                    description=clean_description,
                    violation_date=violation_date,
                    input_by_id=actor,
                    created_at=now,
                    status=CaseStatus.PENDING,
                    location=_optional_text(location),
                    witnesses=_optional_text(witnesses),
                    evidence_urls=_clean_urls(evidence_urls),
                )
            )
            await tx.audit.append_event(
                AuditEventCreateInput(
                    case_id=created.case_id,
                    event_type="CASE_OPENED",
                    actor_user_id=actor,
                    payload={"case_number": created.case_number},
                )
            )
            return created

        created = await self._run("open_case", work)
        logger.info(
            "case_opened case_id=%s case_number=%s actor_id=%s",
            created.case_id,
            created.case_number,
            actor,
        )
        return created

    async def update_case(
        self,
        *,
        case_id: UUID,
        actor_id: str,
        update: CaseUpdateInput,
    ) -> CaseRecord:
        """Edit descriptive case fields; status and case number never change here."""

        actor = _require_actor(actor_id)
        if not update.provided():
            raise ValidationError("no case fields supplied")
        if update.class_level is not UNSET:
            update = replace(
                update,
                class_level=_require_text(update.class_level, field_name="class_level"),
            )
        if update.description is not UNSET:
            update = replace(
                update,
                description=_require_text(update.description, field_name="description"),
            )
        if update.location is not UNSET:
            update = replace(update, location=_optional_text(update.location))
        if update.witnesses is not UNSET:
            update = replace(update, witnesses=_optional_text(update.witnesses))
        if update.evidence_urls is not UNSET:
            update = replace(update, evidence_urls=_clean_urls(update.evidence_urls))
        fields = sorted(update.provided())

        async def work(tx: CaseTransaction) -> CaseRecord:
            await self._lock_case(tx, case_id=case_id)
            updated = await tx.cases.update_case(
                case_id=case_id,
                update=update,
                updated_at=self._now(),
            )
            await tx.audit.append_event(
                AuditEventCreateInput(
                    case_id=case_id,
                    event_type="CASE_UPDATED",
                    actor_user_id=actor,
                    payload={"fields": fields},
                )
            )
            return updated

        updated = await self._run("update_case", work)
        logger.info(
            "case_updated case_id=%s fields=%s actor_id=%s",
            case_id,
            ",".join(fields),
            actor,
        )
        return updated

    async def append_action(
        self,
        *,
        case_id: UUID,
        actor_id: str,
        sanction_type_id: UUID,
        description: str,
        follow_up_date: date | None = None,
        evidence_urls: Sequence[str] | None = None,
        notes: str | None = None,
        is_completed: bool = False,
    ) -> ActionRecord:
        """Append an action unless the latest action is already completed."""

        actor = _require_actor(actor_id)
        clean_description = _require_text(description, field_name="description")

        async def work(tx: CaseTransaction) -> tuple[ActionRecord, CaseStatus, CaseStatus]:
            case = await self._lock_case(tx, case_id=case_id)

            validator = SanctionEligibilityValidator(catalog=tx.catalog)
            eligible = await validator.is_eligible(
                violation_id=case.violation_id,
                sanction_type_id=sanction_type_id,
            )
            if not eligible:
                raise ValidationError(
                    f"sanction type {sanction_type_id} is not allowed for this case's violation"
                )

            latest = await tx.actions.latest_for_case(case_id=case_id)
            if latest is not None and latest.is_completed:
                raise ConflictError(LAST_ACTION_COMPLETED_MESSAGE)

            action = await tx.actions.append(
                ActionCreateInput(
                    action_id=uuid4(),
                    case_id=case_id,
                    action_by_id=actor,
                    sanction_type_id=sanction_type_id,
                    description=clean_description,
                    created_at=self._now(),
                    follow_up_date=follow_up_date,
                    notes=_optional_text(notes),
                    evidence_urls=_clean_urls(evidence_urls),
                    is_completed=is_completed,
                )
            )
            new_status = await self._reproject(tx, case=case)
            await self._audit_action(
                tx,
                case=case,
                event_type="ACTION_APPENDED",
                actor=actor,
                action=action,
                new_status=new_status,
            )
            return action, case.status, new_status

        action, old_status, new_status = await self._run("append_action", work)
        logger.info(
            "case_action_appended case_id=%s action_id=%s is_completed=%s status=%s->%s",
            case_id,
            action.action_id,
            action.is_completed,
            old_status.value,
            new_status.value,
        )
        return action

    async def edit_action(
        self,
        *,
        action_id: UUID,
        actor_id: str,
        update: ActionUpdateInput,
    ) -> ActionRecord:
        """Apply a partial edit and re-project status from the whole timeline."""

        actor = _require_actor(actor_id)
        if update.description is not UNSET:
            update = replace(
                update,
                description=_require_text(update.description, field_name="description"),
            )
        if update.notes is not UNSET:
            update = replace(update, notes=_optional_text(update.notes))
        if update.evidence_urls is not UNSET:
            update = replace(update, evidence_urls=_clean_urls(update.evidence_urls))

        async def work(tx: CaseTransaction) -> tuple[ActionRecord, CaseStatus, CaseStatus]:
            case = await self._lock_case_for_action(tx, action_id=action_id)

            if update.sanction_type_id is not UNSET:
                validator = SanctionEligibilityValidator(catalog=tx.catalog)
                eligible = await validator.is_eligible(
                    violation_id=case.violation_id,
                    sanction_type_id=update.sanction_type_id,
                )
                if not eligible:
                    raise ValidationError(
                        f"sanction type {update.sanction_type_id} is not allowed "
                        "for this case's violation"
                    )

            action = await tx.actions.edit(
                action_id=action_id,
                actor_id=actor,
                update=update,
                edited_at=self._now(),
            )
            new_status = await self._reproject(tx, case=case)
            await self._audit_action(
                tx,
                case=case,
                event_type="ACTION_EDITED",
                actor=actor,
                action=action,
                new_status=new_status,
                extra={"fields": sorted(update.provided())},
            )
            return action, case.status, new_status

        action, old_status, new_status = await self._run("edit_action", work)
        logger.info(
            "case_action_edited case_id=%s action_id=%s fields=%s status=%s->%s",
            action.case_id,
            action_id,
            ",".join(sorted(update.provided())),
            old_status.value,
            new_status.value,
        )
        return action

    async def delete_action(self, *, action_id: UUID, actor_id: str) -> None:
        """Soft-delete an action and re-project status from the remaining timeline."""

        actor = _require_actor(actor_id)

        async def work(tx: CaseTransaction) -> tuple[ActionRecord, CaseStatus, CaseStatus]:
            case = await self._lock_case_for_action(tx, action_id=action_id)
            action = await tx.actions.soft_delete(
                action_id=action_id,
                actor_id=actor,
                deleted_at=self._now(),
            )
            new_status = await self._reproject(tx, case=case)
            await self._audit_action(
                tx,
                case=case,
                event_type="ACTION_DELETED",
                actor=actor,
                action=action,
                new_status=new_status,
            )
            return action, case.status, new_status

        action, old_status, new_status = await self._run("delete_action", work)
        logger.info(
            "case_action_deleted case_id=%s action_id=%s status=%s->%s",
            action.case_id,
            action_id,
            old_status.value,
            new_status.value,
        )

    async def get_case(self, *, case_id: UUID) -> CaseRecord:
        """Return one case or raise NotFoundError."""

        async def work(tx: CaseTransaction) -> CaseRecord:
            return await self._require_case(tx, case_id=case_id)

        return await self._run("get_case", work)

    async def list_cases(self, *, status: CaseStatus | None = None) -> list[CaseRecord]:
        """Return cases newest first, optionally only those in one status."""

        async def work(tx: CaseTransaction) -> list[CaseRecord]:
            return await tx.cases.list_cases(status=status)

        return await self._run("list_cases", work)

    async def get_case_actions(self, *, case_id: UUID) -> list[ActionTimelineEntry]:
        """Return the case timeline newest first, deleted actions excluded."""

        async def work(tx: CaseTransaction) -> list[ActionTimelineEntry]:
            await self._require_case(tx, case_id=case_id)
            return await tx.actions.list_for_case(case_id=case_id)

        return await self._run("get_case_actions", work)

    async def get_latest_action(self, *, case_id: UUID) -> ActionRecord | None:
        """Return the latest non-deleted action of a case, or None."""

        async def work(tx: CaseTransaction) -> ActionRecord | None:
            await self._require_case(tx, case_id=case_id)
            return await tx.actions.latest_for_case(case_id=case_id)

        return await self._run("get_latest_action", work)

    async def get_action(self, *, action_id: UUID) -> ActionRecord:
        """Return one action by id, including soft-deleted ones."""

        async def work(tx: CaseTransaction) -> ActionRecord:
            action = await tx.actions.get_action(action_id=action_id)
            if action is None:
                raise NotFoundError(f"action not found: {action_id}")
            return action

        return await self._run("get_action", work)

    async def list_eligible_sanction_types(
        self,
        *,
        violation_id: UUID,
    ) -> list[SanctionTypeRecord]:
        """Return sanction types that may be applied for a violation."""

        async def work(tx: CaseTransaction) -> list[SanctionTypeRecord]:
            validator = SanctionEligibilityValidator(catalog=tx.catalog)
            return await validator.list_eligible_sanction_types(violation_id=violation_id)

        return await self._run("list_eligible_sanction_types", work)

    async def count_cases_by_status(self) -> dict[CaseStatus, int]:
        """Return per-status case totals with every status present."""

        async def work(tx: CaseTransaction) -> dict[CaseStatus, int]:
            counts = await tx.cases.count_by_status()
            return {status: counts.get(status, 0) for status in CaseStatus}

        return await self._run("count_cases_by_status", work)

    async def _run(self, operation: str, work: Callable[[CaseTransaction], Awaitable[T]]) -> T:
        """Run work in a fresh unit of work, retrying transient failures."""

        attempt = 0
        while True:
            attempt += 1
            try:
                async with self._uow.begin() as tx:
                    return await work(tx)
            except (TransientPersistenceError, DuplicateCaseNumberError) as error:
                if attempt >= self._max_attempts:
                    logger.error(
                        "persistence_unavailable operation=%s attempts=%s error=%s",
                        operation,
                        attempt,
                        error,
                    )
                    raise UnavailableError() from error
                logger.warning(
                    "persistence_retry operation=%s attempt=%s max_attempts=%s error=%s",
                    operation,
                    attempt,
                    self._max_attempts,
                    error,
                )
                if isinstance(error, DuplicateCaseNumberError):
                    await self._resync_case_numbers(error.case_number)
                await self._sleep(self._retry_backoff_seconds * attempt)

    async def _resync_case_numbers(self, case_number: str) -> None:
        """Advance the year counter past stored numbers after a collision."""

        try:
            year = parse_case_number(case_number).year
        except ValidationError:
            return
        try:
            async with self._uow.begin() as tx:
                synced = await tx.case_numbers.sync_with_existing(year=year)
        except TransientPersistenceError as error:
            logger.warning(
                "case_number_resync_failed year=%s error=%s",
                year,
                error,
            )
            return
        logger.warning(
            "case_number_counter_resynced year=%s last_value=%s",
            year,
            synced,
        )

    async def _require_case(self, tx: CaseTransaction, *, case_id: UUID) -> CaseRecord:
        case = await tx.cases.get_case(case_id=case_id)
        if case is None:
            raise NotFoundError(f"case not found: {case_id}")
        return case

    async def _lock_case(self, tx: CaseTransaction, *, case_id: UUID) -> CaseRecord:
        case = await tx.cases.lock_case(case_id=case_id)
        if case is None:
            raise NotFoundError(f"case not found: {case_id}")
        _require_mutable(case)
        return case

    async def _lock_case_for_action(
        self,
        tx: CaseTransaction,
        *,
        action_id: UUID,
    ) -> CaseRecord:
        case = await tx.cases.lock_case_for_action(action_id=action_id)
        if case is None:
            raise NotFoundError(f"action not found: {action_id}")
        _require_mutable(case)
        return case

    async def _reproject(self, tx: CaseTransaction, *, case: CaseRecord) -> CaseStatus:
        """Project status from the just-written timeline and persist it on the case."""

        timeline = await tx.actions.list_records_for_case(case_id=case.case_id)
        new_status = project_case_status(timeline, case.status)
        await tx.cases.update_status(
            case_id=case.case_id,
            status=new_status,
            updated_at=self._now(),
        )
        return new_status

    async def _audit_action(
        self,
        tx: CaseTransaction,
        *,
        case: CaseRecord,
        event_type: str,
        actor: str,
        action: ActionRecord,
        new_status: CaseStatus,
        extra: dict[str, object] | None = None,
    ) -> None:
        payload: dict[str, object] = {
            "action_id": str(action.action_id),
            "is_completed": action.is_completed,
            "status_before": case.status.value,
            "status_after": new_status.value,
        }
        if extra:
            payload.update(extra)
        await tx.audit.append_event(
            AuditEventCreateInput(
                case_id=case.case_id,
                event_type=event_type,
                actor_user_id=actor,
                payload=payload,
            )
        )


def _require_mutable(case: CaseRecord) -> None:
    if case.status is CaseStatus.DIBATALKAN:
        raise ConflictError(f"case {case.case_number} is cancelled; its timeline is closed")
