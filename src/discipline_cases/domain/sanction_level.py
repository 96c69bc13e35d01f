"""Severity levels used by the sanction-type catalog."""

from __future__ import annotations

from enum import StrEnum


class SanctionLevel(StrEnum):
    """Catalog severity of one sanction type."""

    RINGAN = "RINGAN"
    SEDANG = "SEDANG"
    BERAT = "BERAT"
