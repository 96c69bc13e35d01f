"""Shared logging configuration helpers for the case API process."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, level: str) -> None:
    """Configure process logging with consistent format and runtime level."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved_level = getattr(logging, normalized_level, logging.INFO)

    logging.basicConfig(
        level=resolved_level,
        format=_LOG_FORMAT,
    )
    # SQL echo stays off unless explicitly raised for sqlalchemy.engine.
    logging.getLogger("sqlalchemy.engine").setLevel(max(resolved_level, logging.WARNING))
