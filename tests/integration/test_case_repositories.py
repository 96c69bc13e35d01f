from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from discipline_cases.application.ports.action_timeline_port import (
    ActionCreateInput,
    ActionUpdateInput,
)
from discipline_cases.application.ports.audit_repository_port import AuditEventCreateInput
from discipline_cases.application.ports.case_repository_port import (
    CaseCreateInput,
    CaseUpdateInput,
    DuplicateCaseNumberError,
)
from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.domain.errors import ConflictError, NotFoundError
from discipline_cases.domain.sanction_level import SanctionLevel
from discipline_cases.infrastructure.db.session import create_session_factory
from discipline_cases.infrastructure.db.unit_of_work import SqlAlchemyCaseUnitOfWork

_BASE = datetime(2025, 4, 1, 7, 30, tzinfo=UTC)


@dataclass(frozen=True)
class SeededCatalog:
    student_id: UUID
    violation_id: UUID
    warning_id: UUID
    letter_id: UUID
    unrelated_id: UUID


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _seed_catalog(sync_url: str) -> SeededCatalog:
    catalog = SeededCatalog(
        student_id=uuid4(),
        violation_id=uuid4(),
        warning_id=uuid4(),
        letter_id=uuid4(),
        unrelated_id=uuid4(),
    )
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        connection.execute(
            sa.text("INSERT INTO students (id, name, nis, is_active) VALUES (:id, :name, :nis, 1)"),
            {"id": catalog.student_id.hex, "name": "Budi", "nis": "1001"},
        )
        connection.execute(
            sa.text("INSERT INTO actors (id, display_name) VALUES (:id, :name)"),
            [
                {"id": "bk-officer", "name": "Guru BK"},
                {"id": "wali-kelas", "name": "Wali Kelas"},
            ],
        )
        connection.execute(
            sa.text(
                "INSERT INTO sanction_types (id, name, level, duration_days, is_active) "
                "VALUES (:id, :name, :level, :duration_days, 1)"
            ),
            [
                {
                    "id": catalog.warning_id.hex,
                    "name": "Teguran Lisan",
                    "level": "RINGAN",
                    "duration_days": None,
                },
                {
                    "id": catalog.letter_id.hex,
                    "name": "Surat Peringatan",
                    "level": "SEDANG",
                    "duration_days": 30,
                },
                {
                    "id": catalog.unrelated_id.hex,
                    "name": "Skorsing",
                    "level": "BERAT",
                    "duration_days": 3,
                },
            ],
        )
        connection.execute(
            sa.text("INSERT INTO violations (id, name, is_active) VALUES (:id, :name, 1)"),
            {"id": catalog.violation_id.hex, "name": "Terlambat"},
        )
        connection.execute(
            sa.text(
                "INSERT INTO violation_sanction_types (violation_id, sanction_type_id) "
                "VALUES (:violation_id, :sanction_type_id)"
            ),
            [
                {"violation_id": catalog.violation_id.hex, "sanction_type_id": item.hex}
                for item in (catalog.warning_id, catalog.letter_id)
            ],
        )
    engine.dispose()
    return catalog


def _case_input(
    catalog: SeededCatalog,
    *,
    case_number: str,
    created_at: datetime = _BASE,
) -> CaseCreateInput:
    return CaseCreateInput(
        case_id=uuid4(),
        case_number=case_number,
        student_id=catalog.student_id,
        violation_id=catalog.violation_id,
        class_level="X IPA 1",
        description="Terlambat masuk kelas",
        violation_date=date(2025, 4, 1),
        input_by_id="bk-officer",
        created_at=created_at,
        evidence_urls=["https://files.example.org/a.jpg"],
    )


def _action_input(
    *,
    case_id: UUID,
    sanction_type_id: UUID,
    description: str,
    offset_minutes: int,
    is_completed: bool = False,
) -> ActionCreateInput:
    return ActionCreateInput(
        action_id=uuid4(),
        case_id=case_id,
        action_by_id="bk-officer",
        sanction_type_id=sanction_type_id,
        description=description,
        created_at=_BASE + timedelta(minutes=offset_minutes),
        is_completed=is_completed,
    )


@pytest.mark.asyncio
async def test_case_insert_and_lookup(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_insert.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        created = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))

    async with uow.begin() as tx:
        loaded = await tx.cases.get_case(case_id=created.case_id)
        missing = await tx.cases.get_case(case_id=uuid4())

    assert loaded is not None
    assert loaded.case_number == "VC-2025-001"
    assert loaded.status is CaseStatus.PENDING
    assert loaded.evidence_urls == ["https://files.example.org/a.jpg"]
    assert loaded.row_version == 0
    assert missing is None


@pytest.mark.asyncio
async def test_duplicate_case_number_is_rejected(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_duplicate.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))

    with pytest.raises(DuplicateCaseNumberError):
        async with uow.begin() as tx:
            await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))

    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        count = connection.execute(sa.text("SELECT COUNT(*) FROM cases")).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_lock_case_bumps_row_version_and_resolves_owning_case(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_lock.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        action = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.warning_id,
                description="Teguran",
                offset_minutes=1,
            )
        )

    async with uow.begin() as tx:
        locked = await tx.cases.lock_case(case_id=case.case_id)
        locked_by_action = await tx.cases.lock_case_for_action(action_id=action.action_id)
        missing = await tx.cases.lock_case_for_action(action_id=uuid4())

    assert locked is not None
    assert locked.row_version == 1
    assert locked_by_action is not None
    assert locked_by_action.case_id == case.case_id
    assert locked_by_action.row_version == 2
    assert missing is None


@pytest.mark.asyncio
async def test_update_status_and_count_by_status(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_status.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        first = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-002"))
        await tx.cases.update_status(
            case_id=first.case_id,
            status=CaseStatus.SELESAI,
            updated_at=_BASE + timedelta(days=2),
        )

    async with uow.begin() as tx:
        counts = await tx.cases.count_by_status()
        reloaded = await tx.cases.get_case(case_id=first.case_id)

    assert counts == {CaseStatus.PENDING: 1, CaseStatus.SELESAI: 1}
    assert reloaded is not None
    assert reloaded.status is CaseStatus.SELESAI
    assert reloaded.updated_at.replace(tzinfo=None) == (_BASE + timedelta(days=2)).replace(
        tzinfo=None
    )


@pytest.mark.asyncio
async def test_update_case_writes_supplied_fields_and_keeps_status(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_update.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        created = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        await tx.cases.update_status(
            case_id=created.case_id,
            status=CaseStatus.PROSES,
            updated_at=_BASE,
        )

    async with uow.begin() as tx:
        updated = await tx.cases.update_case(
            case_id=created.case_id,
            update=CaseUpdateInput(
                description="Terlambat tiga kali",
                witnesses=None,
                evidence_urls=[],
            ),
            updated_at=_BASE + timedelta(hours=3),
        )

    async with uow.begin() as tx:
        reloaded = await tx.cases.get_case(case_id=created.case_id)

    assert updated.description == "Terlambat tiga kali"
    assert updated.evidence_urls == []
    assert updated.status is CaseStatus.PROSES
    assert reloaded is not None
    assert reloaded.description == "Terlambat tiga kali"
    assert reloaded.class_level == "X IPA 1"
    assert reloaded.witnesses is None
    assert reloaded.case_number == "VC-2025-001"
    assert reloaded.status is CaseStatus.PROSES
    assert reloaded.updated_at.replace(tzinfo=None) == (_BASE + timedelta(hours=3)).replace(
        tzinfo=None
    )


@pytest.mark.asyncio
async def test_list_cases_newest_first_with_status_filter(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_list.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        older = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        newer = await tx.cases.create_case(
            _case_input(
                catalog,
                case_number="VC-2025-002",
                created_at=_BASE + timedelta(days=1),
            )
        )
        await tx.cases.update_status(
            case_id=older.case_id,
            status=CaseStatus.DIBATALKAN,
            updated_at=_BASE + timedelta(days=2),
        )

    async with uow.begin() as tx:
        everything = await tx.cases.list_cases()
        cancelled = await tx.cases.list_cases(status=CaseStatus.DIBATALKAN)
        done = await tx.cases.list_cases(status=CaseStatus.SELESAI)

    assert [case.case_id for case in everything] == [newer.case_id, older.case_id]
    assert [case.case_id for case in cancelled] == [older.case_id]
    assert done == []


@pytest.mark.asyncio
async def test_case_number_counter_starts_at_one_and_increments(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "case_counter.db")
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        first = await tx.case_numbers.increment(year=2025)
        second = await tx.case_numbers.increment(year=2025)
        other_year = await tx.case_numbers.increment(year=2026)

    assert (first, second, other_year) == (1, 2, 1)


@pytest.mark.asyncio
async def test_case_number_counter_is_seeded_from_existing_cases(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_counter_seed.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2024-007"))
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2024-003"))

    async with uow.begin() as tx:
        seeded = await tx.case_numbers.increment(year=2024)

    assert seeded == 8


@pytest.mark.asyncio
async def test_counter_sync_moves_past_stored_case_numbers(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "case_counter_sync.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        await tx.case_numbers.increment(year=2025)
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-004"))

    async with uow.begin() as tx:
        synced = await tx.case_numbers.sync_with_existing(year=2025)
        unchanged = await tx.case_numbers.sync_with_existing(year=2025)
        missing_year = await tx.case_numbers.sync_with_existing(year=2030)

    async with uow.begin() as tx:
        next_value = await tx.case_numbers.increment(year=2025)

    assert (synced, unchanged, missing_year) == (4, 4, 0)
    assert next_value == 5


@pytest.mark.asyncio
async def test_counter_increment_is_rolled_back_with_its_transaction(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "case_counter_rollback.db")
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        await tx.case_numbers.increment(year=2025)

    with pytest.raises(NotFoundError):
        async with uow.begin() as tx:
            await tx.case_numbers.increment(year=2025)
            raise NotFoundError("student not found")

    async with uow.begin() as tx:
        next_value = await tx.case_numbers.increment(year=2025)

    assert next_value == 2


@pytest.mark.asyncio
async def test_timeline_lists_live_actions_newest_first_with_names(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "timeline_list.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        older = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.warning_id,
                description="Teguran",
                offset_minutes=1,
            )
        )
        newer = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.letter_id,
                description="Surat peringatan",
                offset_minutes=2,
                is_completed=True,
            )
        )

    async with uow.begin() as tx:
        entries = await tx.actions.list_for_case(case_id=case.case_id)
        latest = await tx.actions.latest_for_case(case_id=case.case_id)

    assert [entry.action.action_id for entry in entries] == [newer.action_id, older.action_id]
    assert entries[0].sanction_type is not None
    assert entries[0].sanction_type.name == "Surat Peringatan"
    assert entries[0].sanction_type.level is SanctionLevel.SEDANG
    assert entries[0].sanction_type.duration_days == 30
    assert entries[0].action_by_name == "Guru BK"
    assert entries[0].edited_by_name is None
    assert entries[0].action.action_type == "SANKSI"
    assert latest is not None
    assert latest.action_id == newer.action_id
    assert latest.is_completed is True
    assert older.sequence_no < newer.sequence_no


@pytest.mark.asyncio
async def test_edit_writes_only_supplied_fields_and_stamps_editor(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "timeline_edit.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        action = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.warning_id,
                description="Teguran",
                offset_minutes=1,
            )
        )

    async with uow.begin() as tx:
        edited = await tx.actions.edit(
            action_id=action.action_id,
            actor_id="wali-kelas",
            update=ActionUpdateInput(is_completed=True, follow_up_date=date(2025, 4, 8)),
            edited_at=_BASE + timedelta(hours=1),
        )

    async with uow.begin() as tx:
        entries = await tx.actions.list_for_case(case_id=case.case_id)

    assert edited.is_completed is True
    assert edited.follow_up_date == date(2025, 4, 8)
    assert edited.description == "Teguran"
    assert edited.sanction_type_id == catalog.warning_id
    assert edited.edited_by_id == "wali-kelas"
    assert edited.edited_at is not None
    assert entries[0].edited_by_name == "Wali Kelas"


@pytest.mark.asyncio
async def test_soft_delete_hides_action_but_keeps_row(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "timeline_delete.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        kept = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.warning_id,
                description="Teguran",
                offset_minutes=1,
            )
        )
        removed = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.letter_id,
                description="Surat peringatan",
                offset_minutes=2,
            )
        )

    async with uow.begin() as tx:
        await tx.actions.soft_delete(
            action_id=removed.action_id,
            actor_id="bk-officer",
            deleted_at=_BASE + timedelta(hours=1),
        )

    async with uow.begin() as tx:
        records = await tx.actions.list_records_for_case(case_id=case.case_id)
        tombstone = await tx.actions.get_action(action_id=removed.action_id)

    assert [record.action_id for record in records] == [kept.action_id]
    assert tombstone is not None
    assert tombstone.deleted_by_id == "bk-officer"
    assert tombstone.deleted_at is not None

    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        count = connection.execute(sa.text("SELECT COUNT(*) FROM case_actions")).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_deleted_action_rejects_edit_and_second_delete(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "timeline_delete_twice.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        action = await tx.actions.append(
            _action_input(
                case_id=case.case_id,
                sanction_type_id=catalog.warning_id,
                description="Teguran",
                offset_minutes=1,
            )
        )
        await tx.actions.soft_delete(
            action_id=action.action_id,
            actor_id="bk-officer",
            deleted_at=_BASE + timedelta(hours=1),
        )

    with pytest.raises(ConflictError):
        async with uow.begin() as tx:
            await tx.actions.soft_delete(
                action_id=action.action_id,
                actor_id="bk-officer",
                deleted_at=_BASE + timedelta(hours=2),
            )
    with pytest.raises(ConflictError):
        async with uow.begin() as tx:
            await tx.actions.edit(
                action_id=action.action_id,
                actor_id="bk-officer",
                update=ActionUpdateInput(description="Ubah"),
                edited_at=_BASE + timedelta(hours=2),
            )
    with pytest.raises(NotFoundError):
        async with uow.begin() as tx:
            await tx.actions.soft_delete(
                action_id=uuid4(),
                actor_id="bk-officer",
                deleted_at=_BASE,
            )


@pytest.mark.asyncio
async def test_catalog_lookups_resolve_allow_list(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "catalog.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        student = await tx.catalog.get_student(student_id=catalog.student_id)
        violation = await tx.catalog.get_violation(violation_id=catalog.violation_id)
        missing = await tx.catalog.get_violation(violation_id=uuid4())
        sanction_type = await tx.catalog.get_sanction_type(sanction_type_id=catalog.unrelated_id)
        listed = await tx.catalog.list_sanction_types(
            sanction_type_ids=frozenset({catalog.warning_id, catalog.letter_id})
        )

    assert student is not None
    assert student.nis == "1001"
    assert student.is_active is True
    assert violation is not None
    assert violation.allowed_sanction_type_ids == frozenset(
        {catalog.warning_id, catalog.letter_id}
    )
    assert missing is None
    assert sanction_type is not None
    assert sanction_type.level is SanctionLevel.BERAT
    assert [item.name for item in listed] == ["Surat Peringatan", "Teguran Lisan"]


@pytest.mark.asyncio
async def test_audit_event_append_persists_payload(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "audit.db")
    catalog = _seed_catalog(sync_url)
    uow = SqlAlchemyCaseUnitOfWork(create_session_factory(async_url))

    async with uow.begin() as tx:
        case = await tx.cases.create_case(_case_input(catalog, case_number="VC-2025-001"))
        event_id = await tx.audit.append_event(
            AuditEventCreateInput(
                case_id=case.case_id,
                event_type="CASE_OPENED",
                actor_user_id="bk-officer",
                payload={"case_number": "VC-2025-001"},
            )
        )

    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        row = connection.execute(
            sa.text("SELECT event_type, actor_user_id, payload FROM case_events WHERE id = :id"),
            {"id": event_id},
        ).mappings().one()

    assert row["event_type"] == "CASE_OPENED"
    assert row["actor_user_id"] == "bk-officer"
    assert "VC-2025-001" in row["payload"]
