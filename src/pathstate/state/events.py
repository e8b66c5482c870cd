"""Change notifications and async status values.

Every effective write (or every coalesced path at transaction flush) is
described by one :class:`ChangeEvent`.  Exact-path handlers receive the new
value plus the event; wildcard and global handlers receive only the event.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AsyncStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class ChangeEvent(BaseModel):
    """A single notified change at ``path``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str = Field(..., description="Dot-separated path that was written")
    value: Any = Field(default=None, description="Value after the write (or transaction)")
    old_value: Any = Field(
        default=None,
        description="Value before the write; for a transaction, before its first write to this path",
    )

    @field_validator("path")
    @classmethod
    def _require_path(cls, value: str) -> str:
        if not value:
            raise ValueError("path must be non-empty")
        return value
