"""SQLAlchemy unit of work: one AsyncSession transaction per case operation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Final

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from discipline_cases.application.ports.unit_of_work_port import (
    CaseTransaction,
    CaseUnitOfWorkPort,
    TransientPersistenceError,
)
from discipline_cases.infrastructure.db.action_timeline_store import (
    SqlAlchemyActionTimelineStore,
)
from discipline_cases.infrastructure.db.audit_repository import SqlAlchemyAuditRepository
from discipline_cases.infrastructure.db.case_number_sequence_repository import (
    SqlAlchemyCaseNumberSequenceRepository,
)
from discipline_cases.infrastructure.db.case_repository import SqlAlchemyCaseRepository
from discipline_cases.infrastructure.db.catalog_repository import SqlAlchemyCatalogRepository

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_SQLSTATES: Final = frozenset({"40001", "40P01", "55P03"})


def _is_transient(error: sa_exc.DBAPIError) -> bool:
    if isinstance(error, sa_exc.OperationalError) or error.connection_invalidated:
        return True
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    return sqlstate in _TRANSIENT_SQLSTATES


class SqlAlchemyCaseTransaction(CaseTransaction):
    """Repositories sharing one open session transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._cases = SqlAlchemyCaseRepository(session)
        self._actions = SqlAlchemyActionTimelineStore(session)
        self._case_numbers = SqlAlchemyCaseNumberSequenceRepository(session)
        self._catalog = SqlAlchemyCatalogRepository(session)
        self._audit = SqlAlchemyAuditRepository(session)

    @property
    def cases(self) -> SqlAlchemyCaseRepository:
        return self._cases

    @property
    def actions(self) -> SqlAlchemyActionTimelineStore:
        return self._actions

    @property
    def case_numbers(self) -> SqlAlchemyCaseNumberSequenceRepository:
        return self._case_numbers

    @property
    def catalog(self) -> SqlAlchemyCatalogRepository:
        return self._catalog

    @property
    def audit(self) -> SqlAlchemyAuditRepository:
        return self._audit


class SqlAlchemyCaseUnitOfWork(CaseUnitOfWorkPort):
    """Commit on clean exit, roll back on any error, flag retryable DB failures."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[SqlAlchemyCaseTransaction]:
        try:
            async with self._session_factory() as session, session.begin():
                yield SqlAlchemyCaseTransaction(session)
        except sa_exc.DBAPIError as error:
            if not _is_transient(error):
                raise
            logger.debug("transient_db_error error=%s", error)
            raise TransientPersistenceError(str(error.orig)) from error
        except sa_exc.TimeoutError as error:
            raise TransientPersistenceError("connection pool timeout") from error
