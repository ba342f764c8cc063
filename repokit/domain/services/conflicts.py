"""Conflict resolution policies for optimistic-concurrency updates.

A resolver receives a ConflictSnapshot and writes the merged values into
snapshot.resolved in place.  The default ConflictResolver lets the caller's
submitted value win for every field and records a FieldConflict (and an
ERROR log line) for each field where the submitted value overrode a
different persisted value.

Subclass and override resolve_field() for rule-driven merges, or resolve()
for whole-entity policies.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from repokit.domain.models.conflict import ConflictSnapshot, FieldConflict
from repokit.domain.models.fields import EntityFields, FieldAccessor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConflictResolver(Generic[T]):
    """Default policy: the caller's submitted value wins."""

    def resolve(self, snapshot: ConflictSnapshot[T], fields: EntityFields) -> list[FieldConflict]:
        conflicts: list[FieldConflict] = []
        for accessor in fields.fields:
            conflict = self.resolve_field(snapshot, accessor)
            if conflict is not None:
                conflicts.append(conflict)
        return conflicts

    def resolve_field(
        self, snapshot: ConflictSnapshot[T], accessor: FieldAccessor
    ) -> FieldConflict | None:
        current_value = accessor.get(snapshot.current)
        database_value = accessor.get(snapshot.database)

        accessor.set(snapshot.resolved, current_value)
        resolved_value = accessor.get(snapshot.resolved)

        conflict = None
        if current_value is not None and current_value != database_value:
            conflict = FieldConflict(
                field=accessor.name,
                database_value=database_value,
                intended_value=current_value,
                resolved_value=resolved_value,
            )
            self.report(conflict)

        final_value = self.finalize(conflict, current_value)
        accessor.set(snapshot.resolved, final_value)
        if conflict is not None and final_value is not conflict.resolved_value:
            conflict = conflict.model_copy(update={"resolved_value": final_value})
        return conflict

    def finalize(self, conflict: FieldConflict | None, current_value: Any) -> Any:
        """Value written to resolved once the diagnostic for the field was emitted."""
        return current_value

    def report(self, conflict: FieldConflict) -> None:
        logger.error(
            "Concurrency conflict on %s: database holds %r, intended %r, writing %r",
            conflict.field,
            conflict.database_value,
            conflict.intended_value,
            conflict.resolved_value,
        )


class DatabaseWinsResolver(ConflictResolver[T]):
    """Keep the persisted value for every field that changed underneath the caller."""

    def finalize(self, conflict: FieldConflict | None, current_value: Any) -> Any:
        if conflict is None:
            return current_value
        return conflict.database_value

    def report(self, conflict: FieldConflict) -> None:
        logger.warning(
            "Concurrency conflict on %s: keeping database value %r over %r",
            conflict.field,
            conflict.database_value,
            conflict.intended_value,
        )
