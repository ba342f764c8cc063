"""Generic repository base interface.

Repository[T] is the root abstraction for data access over one entity type.
GenericRepository in this package is the standard implementation; it talks
to a PersistenceSession and never to a driver directly.

Design notes:
  - Store-facing methods are async to accommodate async database drivers.
  - T is the entity shape the repository is specialised for.
  - Mutations return the committed entity or None; the attempt_* variants on
    GenericRepository return a MutationResult describing why a mutation
    did not take effect.
  - Read-path errors propagate to the caller unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar

from repokit.domain.ports.session import Parameters, Predicate

T = TypeVar("T")
R = TypeVar("R")


class Repository(ABC, Generic[T]):
    """Abstract CRUD, paging and projection interface for one entity type."""

    @abstractmethod
    async def count(self, predicate: Predicate | None = None) -> int:
        """Return the number of entities matching predicate (all when None)."""

    @abstractmethod
    async def query_raw(self, statement: str, parameters: Parameters | None = None) -> list[T]:
        """Materialise entities from a store-native statement.  No injection defence."""

    @abstractmethod
    async def list(self, predicate: Predicate | None = None) -> list[T]:
        """Return every entity matching predicate; never None."""

    @abstractmethod
    async def page(self, predicate: Predicate | None, page_start: int, page_size: int) -> list[T]:
        """Return one page of the filtered result.  page_size == -1 disables truncation."""

    @abstractmethod
    async def select(
        self, converter: Callable[[T], R], predicate: Predicate | None = None
    ) -> list[R]:
        """Project each matching entity through converter; never None."""

    @abstractmethod
    async def read(self, predicate: Predicate) -> T | None:
        """Return the first match, or None if nothing matches."""

    @abstractmethod
    async def create(self, entity: T) -> T | None:
        """Persist a new entity and return it with store-assigned values populated."""

    @abstractmethod
    async def update(self, entity: T) -> T | None:
        """Persist changes to an existing entity, resolving concurrency conflicts."""

    @abstractmethod
    async def delete(self, entity: T) -> T | None:
        """Remove the entity and return the now-detached instance."""

    @abstractmethod
    async def execute_raw(self, statement: str, parameters: Parameters | None = None) -> int:
        """Run a statement in a serializable transaction and return the affected rows."""

    @abstractmethod
    def detach_local(self, predicate: Callable[[T], bool]) -> T | None:
        """Stop tracking the first in-memory entity matching predicate."""
