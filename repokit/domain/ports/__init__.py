"""Contracts the repository core requires from external collaborators."""

from .session import (
    ConflictEntry,
    Parameters,
    PersistenceSession,
    Predicate,
    TrackedSet,
    TrackingHandle,
    Transaction,
)

__all__ = [
    "ConflictEntry",
    "Parameters",
    "PersistenceSession",
    "Predicate",
    "TrackedSet",
    "TrackingHandle",
    "Transaction",
]
