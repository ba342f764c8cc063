"""Domain services used by the repository core."""

from .conflicts import ConflictResolver, DatabaseWinsResolver
from .validation import PydanticValidator, ValidationGate, Validator

__all__ = [
    "ConflictResolver",
    "DatabaseWinsResolver",
    "PydanticValidator",
    "ValidationGate",
    "Validator",
]
