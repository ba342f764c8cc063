"""Persistence package.

Exports the SQLAlchemy implementation of the persistence session contract
and the repository factory.
"""

from repokit.infrastructure.persistence.repositories import get_repository, persistence_session
from repokit.infrastructure.persistence.session import (
    SqlAlchemyConflictEntry,
    SqlAlchemySession,
    SqlAlchemyTrackedSet,
    SqlAlchemyTransaction,
)

__all__ = [
    "SqlAlchemyConflictEntry",
    "SqlAlchemySession",
    "SqlAlchemyTrackedSet",
    "SqlAlchemyTransaction",
    "get_repository",
    "persistence_session",
]
