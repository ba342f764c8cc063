"""Unit-of-work coordinator shared by every repository.

Owns the persistence session handle and the validation gate.  commit()
surfaces session errors unchanged; retry policy lives in GenericRepository.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from repokit.domain.models.validation import ValidationResult
from repokit.domain.ports.session import PersistenceSession
from repokit.domain.services.validation import ValidationGate, Validator

T = TypeVar("T")


class UnitOfWork(Generic[T]):
    def __init__(self, session: PersistenceSession, validator: Validator[T] | None = None) -> None:
        self._session = session
        self._gate: ValidationGate[T] = ValidationGate(validator)

    @property
    def session(self) -> PersistenceSession:
        return self._session

    async def commit(self) -> None:
        """Persist every change tracked by the session."""
        await self._session.commit_all()

    def validate_model(self, entity: Any) -> bool:
        return self._gate.validate(entity)

    def check_model(self, entity: Any) -> ValidationResult:
        return self._gate.check(entity)
