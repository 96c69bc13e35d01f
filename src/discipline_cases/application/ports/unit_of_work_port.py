"""Port for transactional units of work spanning case and timeline writes."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from discipline_cases.application.ports.action_timeline_port import ActionTimelineStorePort
from discipline_cases.application.ports.audit_repository_port import AuditRepositoryPort
from discipline_cases.application.ports.case_number_sequence_port import (
    CaseNumberSequencePort,
)
from discipline_cases.application.ports.case_repository_port import CaseRepositoryPort
from discipline_cases.application.ports.catalog_port import CatalogPort


class TransientPersistenceError(RuntimeError):
    """Raised when a unit of work failed for a reason worth retrying."""


class CaseTransaction(Protocol):
    """Repositories bound to one open transaction."""

    @property
    def cases(self) -> CaseRepositoryPort: ...

    @property
    def actions(self) -> ActionTimelineStorePort: ...

    @property
    def case_numbers(self) -> CaseNumberSequencePort: ...

    @property
    def catalog(self) -> CatalogPort: ...

    @property
    def audit(self) -> AuditRepositoryPort: ...


class CaseUnitOfWorkPort(Protocol):
    """Factory of transactions: commit on clean exit, rollback on error."""

    def begin(self) -> AbstractAsyncContextManager[CaseTransaction]:
        """Open one transaction."""
