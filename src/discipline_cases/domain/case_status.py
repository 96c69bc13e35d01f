"""Case status enum for the discipline case lifecycle."""

from __future__ import annotations

from enum import StrEnum


class CaseStatus(StrEnum):
    """Statuses a discipline case can hold."""

    PENDING = "PENDING"
    PROSES = "PROSES"
    SELESAI = "SELESAI"
    DIBATALKAN = "DIBATALKAN"


TERMINAL_STATUSES = frozenset({CaseStatus.DIBATALKAN})
