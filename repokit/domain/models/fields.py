"""Declared field accessors for entity shapes.

Conflict resolution walks an entity field by field.  Instead of inspecting
arbitrary attributes at call time, every entity shape resolves to one
EntityFields descriptor: an ordered tuple of (name, getter, setter) accessors.

Resolution order in fields_for():
  1. a descriptor registered with register_fields();
  2. an ``__entity_fields__()`` classmethod on the entity type;
  3. dataclass fields;
  4. pydantic ``model_fields``.
Descriptors are built once per type and cached.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class FieldAccessor:
    """One settable field: how to read it and how to write it."""

    name: str
    get: Callable[[Any], Any]
    set: Callable[[Any, Any], None]

    @classmethod
    def attribute(cls, name: str) -> FieldAccessor:
        """Accessor backed by plain attribute get/set."""
        return cls(
            name=name,
            get=lambda obj: getattr(obj, name),
            set=lambda obj, value: setattr(obj, name, value),
        )


@dataclass(frozen=True)
class EntityFields:
    """Field descriptor for one entity shape.

    fields lists the publicly settable fields that take part in a merge.
    key_fields lists identity and bookkeeping fields (primary keys, version
    counters) that are carried in value snapshots but never merged.
    """

    entity_type: type
    fields: tuple[FieldAccessor, ...]
    key_fields: tuple[FieldAccessor, ...] = field(default=())

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def dump(self, entity: Any) -> dict[str, Any]:
        """Return every field value (key fields included) as a plain dict."""
        return {f.name: f.get(entity) for f in (*self.key_fields, *self.fields)}

    def build(self, values: Mapping[str, Any]) -> Any:
        """Construct a detached instance of the entity shape from a values mapping."""
        known = {f.name for f in (*self.key_fields, *self.fields)}
        return self.entity_type(**{k: v for k, v in values.items() if k in known})

    def apply(self, entity: Any, values: Mapping[str, Any]) -> None:
        """Write the settable fields present in values onto entity."""
        for accessor in self.fields:
            if accessor.name in values:
                accessor.set(entity, values[accessor.name])

    @classmethod
    def from_names(
        cls, entity_type: type, names: Iterable[str], key_names: Iterable[str] = ()
    ) -> EntityFields:
        keys = tuple(key_names)
        return cls(
            entity_type=entity_type,
            fields=tuple(FieldAccessor.attribute(n) for n in names if n not in keys),
            key_fields=tuple(FieldAccessor.attribute(n) for n in keys),
        )


_REGISTRY: dict[type, EntityFields] = {}


def register_fields(descriptor: EntityFields) -> EntityFields:
    """Register (or replace) the descriptor for descriptor.entity_type."""
    _REGISTRY[descriptor.entity_type] = descriptor
    return descriptor


def fields_for(entity_type: type) -> EntityFields:
    """Return the field descriptor for entity_type.

    Raises TypeError when the type exposes no declared fields.
    """
    descriptor = _REGISTRY.get(entity_type)
    if descriptor is not None:
        return descriptor

    declared = getattr(entity_type, "__entity_fields__", None)
    if callable(declared):
        descriptor = declared()
    elif dataclasses.is_dataclass(entity_type):
        descriptor = EntityFields.from_names(
            entity_type, [f.name for f in dataclasses.fields(entity_type) if f.init]
        )
    elif isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
        if entity_type.model_config.get("frozen"):
            raise TypeError(f"{entity_type.__name__} is frozen; merged values cannot be written")
        descriptor = EntityFields.from_names(entity_type, list(entity_type.model_fields))
    else:
        raise TypeError(f"No field descriptor declared for {entity_type!r}")

    _REGISTRY[entity_type] = descriptor
    return descriptor


def clear_registry() -> None:
    """Drop every cached descriptor (tests re-register shapes between cases)."""
    _REGISTRY.clear()
