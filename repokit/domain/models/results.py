"""Typed outcomes for mutation operations.

Mutations never raise for expected failures.  MutationResult tells the
caller which path was taken; the plain create/update/delete methods collapse
it to ``entity`` (None unless the mutation took effect).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from .conflict import FieldConflict

T = TypeVar("T")


class MutationOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    VALIDATION_REJECTED = "validation_rejected"
    STAGING_FAILED = "staging_failed"
    CONFLICT_DATA_MISSING = "conflict_data_missing"
    CONFLICT_RETRIES_EXHAUSTED = "conflict_retries_exhausted"
    FAULT = "fault"


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    outcome: MutationOutcome
    entity: T | None = None
    errors: tuple[str, ...] = ()
    error: BaseException | None = None
    attempts: int = 0
    conflicts: tuple[FieldConflict, ...] = field(default=())

    @property
    def succeeded(self) -> bool:
        return self.outcome is MutationOutcome.SUCCEEDED

    @classmethod
    def success(
        cls, entity: T, attempts: int = 1, conflicts: Iterable[FieldConflict] = ()
    ) -> MutationResult[T]:
        return cls(
            MutationOutcome.SUCCEEDED, entity=entity, attempts=attempts, conflicts=tuple(conflicts)
        )

    @classmethod
    def failure(
        cls,
        outcome: MutationOutcome,
        *,
        errors: Iterable[str] = (),
        error: BaseException | None = None,
        attempts: int = 0,
        conflicts: Iterable[FieldConflict] = (),
    ) -> MutationResult[T]:
        return cls(
            outcome,
            errors=tuple(errors),
            error=error,
            attempts=attempts,
            conflicts=tuple(conflicts),
        )
