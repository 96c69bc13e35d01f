"""Client-visible error taxonomy for case lifecycle operations."""

from __future__ import annotations

from typing import ClassVar


class CaseEngineError(Exception):
    """Base error carrying a machine-readable kind and a human-readable message."""

    kind: ClassVar[str] = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CaseEngineError, LookupError):
    """Raised when a case, action, or catalog reference does not exist."""

    kind = "not_found"


class ValidationError(CaseEngineError, ValueError):
    """Raised for malformed input or catalog-ineligible references."""

    kind = "validation"


class ConflictError(CaseEngineError):
    """Raised when the current timeline state forbids the requested mutation."""

    kind = "conflict"


class UnauthorizedError(CaseEngineError, PermissionError):
    """Raised when a mutating call arrives without an actor identity."""

    kind = "unauthorized"


class UnavailableError(CaseEngineError):
    """Raised when persistence stays unavailable after bounded retries."""

    kind = "unavailable"

    def __init__(self, message: str = "service temporarily unavailable, try again") -> None:
        super().__init__(message)
