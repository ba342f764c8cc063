"""Domain repository interfaces and the generic implementation.

Import from this package rather than individual modules to avoid coupling
callers to specific module paths.
"""

from .base import Repository
from .generic import NO_PAGE_LIMIT, GenericRepository
from .unit_of_work import UnitOfWork

__all__ = [
    "Repository",
    "UnitOfWork",
    "GenericRepository",
    "NO_PAGE_LIMIT",
]
