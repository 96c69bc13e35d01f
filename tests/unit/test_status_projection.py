from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from discipline_cases.domain.case_status import CaseStatus
from discipline_cases.domain.status_projection import (
    latest_action,
    order_timeline,
    project_case_status,
)

_BASE = datetime(2025, 3, 1, 8, 0, tzinfo=UTC)


@dataclass(frozen=True)
class _Action:
    label: str
    created_at: datetime
    is_completed: bool = False
    deleted_at: datetime | None = None
    sequence_no: int = 0


def test_empty_timeline_keeps_current_status() -> None:
    assert project_case_status([], CaseStatus.PENDING) is CaseStatus.PENDING
    assert project_case_status([], CaseStatus.PROSES) is CaseStatus.PROSES
    assert project_case_status(None, CaseStatus.SELESAI) is CaseStatus.SELESAI


def test_latest_incomplete_action_projects_proses() -> None:
    timeline = [_Action("a1", _BASE, is_completed=False)]

    assert project_case_status(timeline, CaseStatus.PENDING) is CaseStatus.PROSES


def test_latest_completed_action_projects_selesai() -> None:
    timeline = [
        _Action("a1", _BASE, is_completed=False),
        _Action("a2", _BASE + timedelta(hours=1), is_completed=True),
    ]

    assert project_case_status(timeline, CaseStatus.PROSES) is CaseStatus.SELESAI


def test_only_latest_action_decides_status() -> None:
    timeline = [
        _Action("a1", _BASE, is_completed=True),
        _Action("a2", _BASE + timedelta(hours=1), is_completed=False),
    ]

    assert project_case_status(timeline, CaseStatus.SELESAI) is CaseStatus.PROSES


def test_deleted_actions_are_ignored() -> None:
    timeline = [
        _Action("a1", _BASE, is_completed=False),
        _Action(
            "a2",
            _BASE + timedelta(hours=1),
            is_completed=True,
            deleted_at=_BASE + timedelta(hours=2),
        ),
    ]

    assert project_case_status(timeline, CaseStatus.SELESAI) is CaseStatus.PROSES


def test_all_actions_deleted_keeps_current_status() -> None:
    timeline = [_Action("a1", _BASE, is_completed=True, deleted_at=_BASE)]

    assert project_case_status(timeline, CaseStatus.SELESAI) is CaseStatus.SELESAI


@pytest.mark.parametrize("is_completed", [True, False])
def test_cancelled_case_is_absorbing(is_completed: bool) -> None:
    timeline = [_Action("a1", _BASE, is_completed=is_completed)]

    assert project_case_status(timeline, CaseStatus.DIBATALKAN) is CaseStatus.DIBATALKAN


def test_projection_does_not_depend_on_input_order() -> None:
    newer = _Action("newer", _BASE + timedelta(minutes=5), is_completed=True)
    older = _Action("older", _BASE, is_completed=False)

    assert project_case_status([newer, older], CaseStatus.PENDING) is CaseStatus.SELESAI
    assert project_case_status([older, newer], CaseStatus.PENDING) is CaseStatus.SELESAI


def test_equal_timestamps_break_ties_by_insertion_order() -> None:
    first = _Action("first", _BASE, is_completed=True, sequence_no=1)
    second = _Action("second", _BASE, is_completed=False, sequence_no=2)

    assert latest_action([second, first]) is second
    assert project_case_status([first, second], CaseStatus.PENDING) is CaseStatus.PROSES


def test_naive_timestamps_are_treated_as_utc() -> None:
    naive = _Action("naive", datetime(2025, 3, 1, 9, 0), is_completed=True)
    aware = _Action("aware", _BASE, is_completed=False)

    assert [action.label for action in order_timeline([aware, naive])] == ["naive", "aware"]


def test_malformed_entries_do_not_raise() -> None:
    class _NoTimestamp:
        is_completed = True
        deleted_at = None

    timeline = [_NoTimestamp(), _Action("a1", _BASE, is_completed=False)]

    assert project_case_status(timeline, CaseStatus.PENDING) is CaseStatus.PROSES  # type: ignore[arg-type]


def test_order_timeline_is_newest_first_without_deleted() -> None:
    a1 = _Action("a1", _BASE)
    a2 = _Action("a2", _BASE + timedelta(hours=1), deleted_at=_BASE + timedelta(hours=3))
    a3 = _Action("a3", _BASE + timedelta(hours=2))

    assert [action.label for action in order_timeline([a1, a2, a3])] == ["a3", "a1"]
    assert latest_action([]) is None
