"""Exceptions raised by the repository core and its persistence sessions.

ConcurrencyConflict is the only signal the update loop recovers from; every
other exception raised during a mutation is a fault.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repokit.domain.ports.session import ConflictEntry


class RepositoryError(RuntimeError):
    """Base class for repository-layer errors."""


class InvalidPageError(RepositoryError, ValueError):
    """Raised when page() receives a start or size outside the supported range."""


class ConcurrencyConflict(RepositoryError):
    """Raised by a session when a staged update's baseline no longer matches storage.

    entries holds one ConflictEntry per conflicting tracked entity.
    """

    def __init__(self, entries: list[ConflictEntry], message: str | None = None) -> None:
        self.entries = list(entries)
        super().__init__(message or f"Concurrency conflict on {len(self.entries)} entry(ies)")


class ConflictDataMissingError(RepositoryError):
    """Raised when the persisted values needed to resolve a conflict are gone."""


class ConflictRetriesExhaustedError(RepositoryError):
    """Raised when an update keeps conflicting past the configured retry bound."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Update still conflicting after {attempts} attempt(s)")


class RawExecutionError(RepositoryError):
    """Raised by execute_raw(strict=True) after the transaction was rolled back.

    The failing exception is chained as __cause__.
    """

    def __init__(self, statement: str, cause: Exception) -> None:
        self.statement = statement
        super().__init__(f"Raw statement failed: {cause}")
