"""Sentinel for partial updates that tells an absent field apart from ``None``."""

from __future__ import annotations

from dataclasses import fields
from enum import Enum
from typing import Any, Final, Literal


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset.UNSET
Unset = Literal[_Unset.UNSET]


def provided_fields(update: Any) -> dict[str, Any]:
    """Return the dataclass attributes of update that are not UNSET."""

    return {
        item.name: getattr(update, item.name)
        for item in fields(update)
        if getattr(update, item.name) is not UNSET
    }
