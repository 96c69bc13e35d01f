"""Human-readable, year-scoped case number format."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from discipline_cases.domain.errors import ValidationError

CASE_NUMBER_PREFIX: Final = "VC"
_SEQUENCE_WIDTH: Final = 3
_CASE_NUMBER_PATTERN: Final = re.compile(r"^VC-(?P<year>\d{4})-(?P<sequence>\d{3,})$")


@dataclass(frozen=True)
class CaseNumber:
    """Parsed case number components."""

    year: int
    sequence: int

    def __str__(self) -> str:
        return format_case_number(year=self.year, sequence=self.sequence)


def format_case_number(*, year: int, sequence: int) -> str:
    """Render `VC-<year>-<seq>` with a zero-padded, 1-based sequence."""

    if sequence < 1:
        raise ValidationError(f"case number sequence must be >= 1, got {sequence}")
    return f"{CASE_NUMBER_PREFIX}-{year:04d}-{sequence:0{_SEQUENCE_WIDTH}d}"


def parse_case_number(value: str) -> CaseNumber:
    """Parse a case number string or raise ValidationError."""

    match = _CASE_NUMBER_PATTERN.match(value.strip())
    if match is None:
        raise ValidationError(f"malformed case number: {value!r}")

    sequence = int(match.group("sequence"))
    if sequence < 1:
        raise ValidationError(f"malformed case number: {value!r}")
    return CaseNumber(year=int(match.group("year")), sequence=sequence)
