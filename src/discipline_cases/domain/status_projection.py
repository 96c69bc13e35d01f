"""Pure projection of case status from its action timeline."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from discipline_cases.domain.case_status import CaseStatus


class TimelineAction(Protocol):
    """Fields of one action that status projection depends on."""

    @property
    def created_at(self) -> datetime: ...

    @property
    def is_completed(self) -> bool: ...

    @property
    def deleted_at(self) -> datetime | None: ...


ActionT = TypeVar("ActionT", bound=TimelineAction)

_MISSING_TIMESTAMP = float("-inf")


def _created_at_key(action: object) -> float:
    """Return a sortable timestamp; missing or foreign values sort oldest."""

    created_at = getattr(action, "created_at", None)
    if not isinstance(created_at, datetime):
        return _MISSING_TIMESTAMP
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return created_at.timestamp()


def _sequence_key(action: object) -> int:
    sequence_no = getattr(action, "sequence_no", None)
    if isinstance(sequence_no, int):
        return sequence_no
    return 0


def _is_deleted(action: object) -> bool:
    return getattr(action, "deleted_at", None) is not None


def order_timeline(timeline: Iterable[ActionT]) -> list[ActionT]:
    """Return non-deleted actions newest first (created_at desc, insert order desc)."""

    live = [action for action in timeline if action is not None and not _is_deleted(action)]
    return sorted(
        live,
        key=lambda action: (_created_at_key(action), _sequence_key(action)),
        reverse=True,
    )


def latest_action(timeline: Iterable[ActionT]) -> ActionT | None:
    """Return the most recently created non-deleted action, if any."""

    ordered = order_timeline(timeline)
    if not ordered:
        return None
    return ordered[0]


def project_case_status(
    timeline: Iterable[TimelineAction] | None,
    current: CaseStatus,
) -> CaseStatus:
    """Project case status from the latest non-deleted action.

    An empty timeline keeps ``current`` so a case never regresses to PENDING
    once it has left it. DIBATALKAN is absorbing and is always kept.
    """

    if current is CaseStatus.DIBATALKAN:
        return current

    try:
        latest = latest_action(timeline or ())
    except TypeError:
        latest = None
    if latest is None:
        return current
    if bool(getattr(latest, "is_completed", False)):
        return CaseStatus.SELESAI
    return CaseStatus.PROSES
