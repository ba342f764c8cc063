"""Conflict snapshot and merge diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


@dataclass
class ConflictSnapshot(Generic[T]):
    """The current / database / resolved triple for one conflict-resolution pass.

    current is the entity as the caller submitted it, database holds the
    values persisted at conflict time, and resolved starts as a copy of the
    database values and is mutated in place by the resolver.
    """

    current: T
    database: T
    resolved: T


class FieldConflict(BaseModel):
    """One field whose submitted value differed from the persisted value."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    field: str
    database_value: Any = None
    intended_value: Any = None
    resolved_value: Any = None
