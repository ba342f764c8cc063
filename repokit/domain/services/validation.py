"""Validation gate and the stock pydantic-backed validator.

The gate never mutates the entity it checks.  A missing entity or a
validator that raises is an internal fault: it is logged at CRITICAL and
reported as invalid, never as valid.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from repokit.domain.models.validation import ValidationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class Validator(Protocol[T]):
    """A rule set bound to one entity shape."""

    def validate(self, entity: T) -> ValidationResult: ...


class PydanticValidator(Generic[T]):
    """Validate an entity against a pydantic schema.

    The entity is read through attribute access (from_attributes=True), so ORM
    instances, dataclasses and plain objects all validate against the same
    schema.  Each pydantic error becomes one "field: message" string.
    """

    def __init__(self, schema: type[BaseModel]) -> None:
        self._schema = schema

    def validate(self, entity: T) -> ValidationResult:
        try:
            self._schema.model_validate(entity, from_attributes=True)
        except ValidationError as exc:
            return ValidationResult.invalid(
                [
                    f"{'.'.join(str(part) for part in err['loc']) or '__root__'}: {err['msg']}"
                    for err in exc.errors()
                ]
            )
        return ValidationResult.valid()


class ValidationGate(Generic[T]):
    """Invoke an optional validator and interpret its pass/fail result."""

    def __init__(self, validator: Validator[T] | None = None) -> None:
        self._validator = validator

    @property
    def validator(self) -> Validator[T] | None:
        return self._validator

    def check(self, entity: Any) -> ValidationResult:
        """Return the full validation result for entity."""
        if entity is None:
            logger.critical("validate() called without an entity")
            return ValidationResult.fault("entity is required")

        if self._validator is None:
            return ValidationResult.valid()

        try:
            result = self._validator.validate(entity)
        except Exception as exc:
            logger.critical(
                "Validator %s failed on %s",
                type(self._validator).__name__,
                type(entity).__name__,
                exc_info=True,
            )
            return ValidationResult.fault(str(exc))

        if not result.is_valid:
            logger.info(
                "%s rejected by %s: %s",
                type(entity).__name__,
                type(self._validator).__name__,
                "; ".join(result.errors),
            )
        return result

    def validate(self, entity: Any) -> bool:
        return self.check(entity).is_valid
