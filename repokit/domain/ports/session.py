"""Persistence session contract consumed by the repository core.

The core never creates or disposes a session; it only calls the operations
below.  repokit.infrastructure.persistence.session implements them over a
SQLAlchemy AsyncSession.

A predicate is either a plain callable evaluated against loaded entities or
a store-native filter expression the session can push down to the query.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Generic, Protocol, TypeVar, Union, runtime_checkable

T = TypeVar("T")

Predicate = Union[Callable[[Any], bool], Any]
Parameters = Mapping[str, Any]


@dataclass(frozen=True)
class TrackingHandle(Generic[T]):
    """Returned by a successful staging call; entity is the tracked instance."""

    entity: T


@runtime_checkable
class TrackedSet(Protocol[T]):
    """Queryable view over one entity type."""

    async def query(self, predicate: Predicate | None = None) -> list[T]: ...

    async def first(self, predicate: Predicate | None = None) -> T | None:
        """First match only; store-native predicates should fetch a single row."""
        ...

    async def count(self, predicate: Predicate | None = None) -> int: ...

    async def from_raw(self, statement: str, parameters: Parameters | None = None) -> list[T]: ...

    def local(self) -> list[T]:
        """Entities of this type already tracked in memory (no store query)."""
        ...


@runtime_checkable
class ConflictEntry(Protocol[T]):
    """One tracked entity whose staged update hit a concurrency conflict."""

    @property
    def entity(self) -> T: ...

    def current_values(self) -> dict[str, Any]: ...

    async def get_database_values(self) -> dict[str, Any] | None:
        """Values currently persisted for this entity, or None if the row is gone."""
        ...

    def set_original_values(self, values: Mapping[str, Any]) -> None: ...

    def set_current_values(self, values: Mapping[str, Any]) -> None: ...


@runtime_checkable
class Transaction(Protocol):
    """Explicit transaction for raw statements; leaving the context without commit() rolls back.

    It is independent of the staged changes: commit() persists only the
    statements run through execute().
    """

    async def __aenter__(self) -> Transaction: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None: ...

    async def execute(self, statement: str, parameters: Parameters | None = None) -> int: ...

    async def commit(self) -> None: ...


@runtime_checkable
class PersistenceSession(Protocol):
    def tracked_set(self, entity_type: type[T]) -> TrackedSet[T]: ...

    async def add(self, entity: T) -> TrackingHandle[T] | None: ...

    async def update(self, entity: T) -> TrackingHandle[T] | None: ...

    async def remove(self, entity: T) -> TrackingHandle[T] | None: ...

    async def commit_all(self) -> None:
        """Persist staged changes; raises ConcurrencyConflict on a stale baseline."""
        ...

    def begin_transaction(self, isolation_level: str) -> Transaction: ...

    def detach(self, entity: Any) -> None: ...
