"""case-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from discipline_cases.application.services.case_lifecycle_service import CaseLifecycleService
from discipline_cases.config.settings import Settings, load_settings
from discipline_cases.infrastructure.db.session import create_session_factory
from discipline_cases.infrastructure.db.unit_of_work import SqlAlchemyCaseUnitOfWork
from discipline_cases.infrastructure.http.case_router import build_case_router
from discipline_cases.infrastructure.logging import configure_logging

logger = logging.getLogger(__name__)


def build_lifecycle_service(settings: Settings) -> CaseLifecycleService:
    """Build case lifecycle service with SQLAlchemy-backed unit of work."""

    session_factory = create_session_factory(settings.database_url)
    return CaseLifecycleService(
        unit_of_work=SqlAlchemyCaseUnitOfWork(session_factory),
        case_number_timezone=settings.case_number_zoneinfo,
        max_attempts=settings.persistence_max_attempts,
        retry_backoff_seconds=settings.persistence_retry_backoff_seconds,
    )


def create_app(
    *,
    lifecycle_service: CaseLifecycleService | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create FastAPI app exposing case lifecycle endpoints."""

    if lifecycle_service is None:
        if settings is None:
            settings = load_settings()
        lifecycle_service = build_lifecycle_service(settings)
    if settings is not None:
        configure_logging(level=settings.log_level)

    app = FastAPI(title="discipline-cases")
    app.include_router(build_case_router(lifecycle_service=lifecycle_service))
    logger.info("case_api_app_created")
    return app


def run_asgi_server(*, host: str, port: int) -> None:
    """Run case-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.case_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run case-api runtime process."""

    settings = load_settings()
    run_asgi_server(host=settings.case_api_host, port=settings.case_api_port)


if __name__ == "__main__":
    main()
