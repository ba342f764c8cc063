"""Validation result model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ValidationResult(BaseModel):
    """Outcome of validating one entity.

    faulted marks a result produced because validation itself could not run
    (missing entity, validator raised) rather than because a rule failed.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = []
    faulted: bool = False

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, errors: list[str]) -> ValidationResult:
        return cls(is_valid=False, errors=errors)

    @classmethod
    def fault(cls, message: str) -> ValidationResult:
        return cls(is_valid=False, errors=[message], faulted=True)
