"""Port for the per-year case number counter."""

from __future__ import annotations

from typing import Protocol


class CaseNumberSequencePort(Protocol):
    """Transactional counter keyed by calendar year."""

    async def increment(self, *, year: int) -> int:
        """Increment the year's counter and return the new 1-based value."""

    async def sync_with_existing(self, *, year: int) -> int:
        """Raise the year's counter to the highest stored sequence and return it."""
