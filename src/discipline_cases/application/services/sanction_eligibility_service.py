"""Eligibility of sanction types against a violation's configured allow-list."""

from __future__ import annotations

from uuid import UUID

from discipline_cases.application.ports.catalog_port import (
    CatalogPort,
    SanctionTypeRecord,
    ViolationRecord,
)
from discipline_cases.domain.errors import NotFoundError


class SanctionEligibilityValidator:
    """Answer whether a sanction type may be applied for a violation."""

    def __init__(self, *, catalog: CatalogPort) -> None:
        self._catalog = catalog

    async def is_eligible(self, *, violation_id: UUID, sanction_type_id: UUID) -> bool:
        """Return whether sanction_type_id is in the violation's allowed set."""

        violation = await self._require_violation(violation_id=violation_id)
        return sanction_type_id in violation.allowed_sanction_type_ids

    async def list_eligible_sanction_types(
        self,
        *,
        violation_id: UUID,
    ) -> list[SanctionTypeRecord]:
        """Return active allowed sanction types for a violation, ordered by name."""

        violation = await self._require_violation(violation_id=violation_id)
        if not violation.allowed_sanction_type_ids:
            return []

        sanction_types = await self._catalog.list_sanction_types(
            sanction_type_ids=violation.allowed_sanction_type_ids,
        )
        return [item for item in sanction_types if item.is_active]

    async def _require_violation(self, *, violation_id: UUID) -> ViolationRecord:
        violation = await self._catalog.get_violation(violation_id=violation_id)
        if violation is None:
            raise NotFoundError(f"violation not found: {violation_id}")
        return violation
