"""repokit: generic async repositories with optimistic-concurrency updates."""

from repokit.domain.exceptions import (
    ConcurrencyConflict,
    ConflictDataMissingError,
    ConflictRetriesExhaustedError,
    InvalidPageError,
    RawExecutionError,
    RepositoryError,
)
from repokit.domain.models import (
    ConflictSnapshot,
    EntityFields,
    FieldConflict,
    MutationOutcome,
    MutationResult,
    RepositorySettings,
    ValidationResult,
    register_fields,
)
from repokit.domain.repositories import NO_PAGE_LIMIT, GenericRepository, Repository, UnitOfWork
from repokit.domain.services import (
    ConflictResolver,
    DatabaseWinsResolver,
    PydanticValidator,
    ValidationGate,
    Validator,
)

__all__ = [
    "ConcurrencyConflict",
    "ConflictDataMissingError",
    "ConflictRetriesExhaustedError",
    "InvalidPageError",
    "RawExecutionError",
    "RepositoryError",
    "ConflictSnapshot",
    "EntityFields",
    "FieldConflict",
    "MutationOutcome",
    "MutationResult",
    "RepositorySettings",
    "ValidationResult",
    "register_fields",
    "NO_PAGE_LIMIT",
    "GenericRepository",
    "Repository",
    "UnitOfWork",
    "ConflictResolver",
    "DatabaseWinsResolver",
    "PydanticValidator",
    "ValidationGate",
    "Validator",
]
