"""Generic repository with optimistic-concurrency updates.

GenericRepository[T] implements Repository[T] on top of a PersistenceSession.

Mutations follow one shape: validate -> stage with the session -> commit.
Expected failures never raise; they are logged and reported through a
MutationResult (attempt_create / attempt_update / attempt_delete), which the
plain create / update / delete methods collapse to the committed entity or
None.

update() is the only mutation that retries.  When the session raises
ConcurrencyConflict the repository reads the persisted values, builds a
ConflictSnapshot, lets the resolver merge into snapshot.resolved, resets the
session's original values to the database values and its current values to
the merged values, then commits again.  The loop is sequential and bounded
by RepositorySettings.max_conflict_retries (None = unbounded).

asyncio cancellation is never caught here, so a cancelled task stops at the
next await between attempts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from repokit.domain.exceptions import (
    ConcurrencyConflict,
    ConflictDataMissingError,
    ConflictRetriesExhaustedError,
    InvalidPageError,
    RawExecutionError,
    RepositoryError,
)
from repokit.domain.models.conflict import ConflictSnapshot, FieldConflict
from repokit.domain.models.fields import fields_for
from repokit.domain.models.results import MutationOutcome, MutationResult
from repokit.domain.models.settings import RepositorySettings
from repokit.domain.ports.session import (
    ConflictEntry,
    Parameters,
    PersistenceSession,
    Predicate,
    TrackedSet,
)
from repokit.domain.services.conflicts import ConflictResolver
from repokit.domain.services.validation import Validator

from .base import Repository
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

NO_PAGE_LIMIT = -1


class GenericRepository(UnitOfWork[T], Repository[T]):
    def __init__(
        self,
        session: PersistenceSession,
        entity_type: type[T],
        validator: Validator[T] | None = None,
        *,
        settings: RepositorySettings | None = None,
        resolver: ConflictResolver[T] | None = None,
    ) -> None:
        super().__init__(session, validator)
        self._entity_type = entity_type
        self._settings = settings or RepositorySettings()
        self._resolver: ConflictResolver[T] = resolver or ConflictResolver()

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def settings(self) -> RepositorySettings:
        return self._settings

    @property
    def _name(self) -> str:
        return self._entity_type.__name__

    def _tracked(self) -> TrackedSet[T]:
        return self._session.tracked_set(self._entity_type)

    # --- reads ---

    async def count(self, predicate: Predicate | None = None) -> int:
        return await self._tracked().count(predicate)

    async def query_raw(self, statement: str, parameters: Parameters | None = None) -> list[T]:
        return await self._tracked().from_raw(statement, parameters)

    async def list(self, predicate: Predicate | None = None) -> list[T]:
        result = await self._tracked().query(predicate)
        if result is None:
            raise RepositoryError(f"Session returned no result set for {self._name}")
        return result

    async def page(self, predicate: Predicate | None, page_start: int, page_size: int) -> list[T]:
        if page_start < 0:
            raise InvalidPageError(f"page_start must be >= 0, got {page_start}")
        if page_size < NO_PAGE_LIMIT:
            raise InvalidPageError(f"page_size must be >= 0 or {NO_PAGE_LIMIT}, got {page_size}")

        items = await self.list(predicate)
        size = len(items)
        if page_start > size:
            raise InvalidPageError(f"page_start {page_start} is past the end of {size} result(s)")

        # The page lies inside the result
        if page_size != NO_PAGE_LIMIT and size > page_start + page_size:
            return items[page_start : page_start + page_size]
        # The result fits in one page, or paging is disabled
        if size <= page_size or page_size == NO_PAGE_LIMIT:
            return items
        # The page runs past the end of the result
        return items[page_start:]

    async def select(
        self, converter: Callable[[T], R], predicate: Predicate | None = None
    ) -> list[R]:
        return [converter(entity) for entity in await self.list(predicate)]

    async def read(self, predicate: Predicate) -> T | None:
        return await self._tracked().first(predicate)

    # --- mutations ---

    async def create(self, entity: T) -> T | None:
        return (await self.attempt_create(entity)).entity

    async def update(self, entity: T) -> T | None:
        return (await self.attempt_update(entity)).entity

    async def delete(self, entity: T) -> T | None:
        return (await self.attempt_delete(entity)).entity

    async def attempt_create(self, entity: T) -> MutationResult[T]:
        rejected = self._reject_invalid(entity, "create")
        if rejected is not None:
            return rejected
        try:
            handle = await self._session.add(entity)
            if handle is None:
                return self._staging_failed("create")
            await self.commit()
            return MutationResult.success(handle.entity)
        except Exception as exc:
            return self._fault("create", exc)

    async def attempt_delete(self, entity: T) -> MutationResult[T]:
        rejected = self._reject_invalid(entity, "delete")
        if rejected is not None:
            return rejected
        try:
            handle = await self._session.remove(entity)
            if handle is None:
                return self._staging_failed("delete")
            await self.commit()
            return MutationResult.success(handle.entity)
        except Exception as exc:
            return self._fault("delete", exc)

    async def attempt_update(self, entity: T) -> MutationResult[T]:
        rejected = self._reject_invalid(entity, "update")
        if rejected is not None:
            return rejected

        limit = self._settings.max_conflict_retries
        target: Any = entity
        conflicts: list[FieldConflict] = []
        attempts = 0

        while True:
            attempts += 1
            staged: Any = target
            try:
                handle = await self._session.update(target)
                if handle is None:
                    return self._staging_failed("update", attempts, conflicts)
                staged = handle.entity
                await self.commit()
                if attempts > 1:
                    logger.info("Updated %s after %d attempt(s)", self._name, attempts)
                return MutationResult.success(handle.entity, attempts, conflicts)

            except ConcurrencyConflict as conflict:
                if limit is not None and attempts > limit:
                    exhausted = ConflictRetriesExhaustedError(attempts)
                    logger.error("update(%s): %s", self._name, exhausted)
                    return MutationResult.failure(
                        MutationOutcome.CONFLICT_RETRIES_EXHAUSTED,
                        error=exhausted,
                        attempts=attempts,
                        conflicts=conflicts,
                    )
                try:
                    target, merged = await self._resolve_conflict(conflict, staged)
                except ConflictDataMissingError as exc:
                    logger.critical("update(%s): %s", self._name, exc)
                    return MutationResult.failure(
                        MutationOutcome.CONFLICT_DATA_MISSING,
                        error=exc,
                        attempts=attempts,
                        conflicts=conflicts,
                    )
                except Exception as exc:
                    return self._fault("update", exc, attempts, conflicts)
                conflicts.extend(merged)
                logger.warning(
                    "update(%s): concurrency conflict on attempt %d, retrying with %d merged field(s)",
                    self._name,
                    attempts,
                    len(merged),
                )

            except Exception as exc:
                return self._fault("update", exc, attempts, conflicts)

    async def _resolve_conflict(
        self, conflict: ConcurrencyConflict, staged: Any
    ) -> tuple[Any, list[FieldConflict]]:
        entry = self._entry_for(conflict, staged)
        database_values = await entry.get_database_values()
        if database_values is None:
            raise ConflictDataMissingError(
                f"Persisted values for the conflicting {self._name} are no longer available"
            )

        fields = fields_for(self._entity_type)
        snapshot = ConflictSnapshot(
            current=fields.build(entry.current_values()),
            database=fields.build(database_values),
            resolved=fields.build(database_values),
        )
        merged = self._resolver.resolve(snapshot, fields)

        entry.set_original_values(database_values)
        entry.set_current_values(fields.dump(snapshot.resolved))
        return entry.entity, merged

    def _entry_for(self, conflict: ConcurrencyConflict, staged: Any) -> ConflictEntry:
        if not conflict.entries:
            raise ConflictDataMissingError("Concurrency conflict carried no entries")
        for entry in conflict.entries:
            if entry.entity is staged:
                return entry
        if len(conflict.entries) == 1:
            return conflict.entries[0]
        raise RepositoryError(
            f"Concurrency conflict spans {len(conflict.entries)} entries, none of them the "
            f"{self._name} being updated"
        )

    def _reject_invalid(self, entity: Any, operation: str) -> MutationResult[T] | None:
        result = self.check_model(entity)
        if result.is_valid:
            return None
        if result.faulted:
            return MutationResult.failure(MutationOutcome.FAULT, errors=result.errors)
        logger.info("%s(%s) rejected by validation", operation, self._name)
        return MutationResult.failure(MutationOutcome.VALIDATION_REJECTED, errors=result.errors)

    def _staging_failed(
        self, operation: str, attempts: int = 1, conflicts: Iterable[FieldConflict] = ()
    ) -> MutationResult[T]:
        logger.error("%s(%s): session refused to stage the entity", operation, self._name)
        return MutationResult.failure(
            MutationOutcome.STAGING_FAILED, attempts=attempts, conflicts=conflicts
        )

    def _fault(
        self,
        operation: str,
        exc: Exception,
        attempts: int = 1,
        conflicts: Iterable[FieldConflict] = (),
    ) -> MutationResult[T]:
        logger.critical("%s(%s) failed", operation, self._name, exc_info=exc)
        return MutationResult.failure(
            MutationOutcome.FAULT, error=exc, attempts=attempts, conflicts=conflicts
        )

    # --- supporting operations ---

    async def execute_raw(
        self, statement: str, parameters: Parameters | None = None, *, strict: bool = False
    ) -> int:
        """Run statement in its own transaction at the configured isolation level.

        The statement does not flush or discard changes staged with the
        session; only the statement itself is committed.

        Returns the affected-row count.  On failure the transaction is rolled
        back and 0 is returned, which callers cannot tell apart from "no rows
        matched"; pass strict=True to get a RawExecutionError instead.
        """
        try:
            async with self._session.begin_transaction(
                self._settings.raw_isolation_level
            ) as transaction:
                rows = await transaction.execute(statement, parameters)
                await transaction.commit()
                return rows
        except Exception as exc:
            logger.error("Raw statement failed and was rolled back: %s", statement, exc_info=exc)
            if strict:
                raise RawExecutionError(statement, exc) from exc
            return 0

    def detach_local(self, predicate: Callable[[T], bool]) -> T | None:
        match = next((e for e in self._tracked().local() if predicate(e)), None)
        if match is not None:
            self._session.detach(match)
        return match
