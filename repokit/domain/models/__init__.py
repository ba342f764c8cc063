"""Domain model package.

Value objects shared by the repository core: conflict snapshots, mutation
results, validation results, settings and entity field descriptors.  None of
them depend on an ORM.
"""

from .conflict import ConflictSnapshot, FieldConflict
from .fields import EntityFields, FieldAccessor, clear_registry, fields_for, register_fields
from .results import MutationOutcome, MutationResult
from .settings import RepositorySettings
from .validation import ValidationResult

__all__ = [
    "ConflictSnapshot",
    "FieldConflict",
    "EntityFields",
    "FieldAccessor",
    "clear_registry",
    "fields_for",
    "register_fields",
    "MutationOutcome",
    "MutationResult",
    "RepositorySettings",
    "ValidationResult",
]
