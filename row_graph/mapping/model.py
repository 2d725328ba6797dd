"""Entity field access.

Supports dataclasses, Pydantic models, and plain classes. Entities are
treated as immutable values: every write returns a new instance.
"""

from __future__ import annotations

import copy
import dataclasses
import inspect
from typing import Any, TypeVar

T = TypeVar("T")


def _is_pydantic_model(cls: type) -> bool:
    """Check if a class is a Pydantic BaseModel."""
    try:
        from pydantic import BaseModel

        return isinstance(cls, type) and issubclass(cls, BaseModel)
    except ImportError:
        return False


def field_names(cls: type) -> list[str]:
    """Extract field names from a class (dataclass, Pydantic, or plain)."""
    # Pydantic model
    if hasattr(cls, "model_fields"):
        return list(cls.model_fields.keys())

    # Dataclass
    if dataclasses.is_dataclass(cls):
        return [f.name for f in dataclasses.fields(cls)]

    # Plain class - use __init__ parameters
    try:
        sig = inspect.signature(cls.__init__)  # type: ignore[misc]
        return [
            name
            for name, param in sig.parameters.items()
            if name != "self" and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
        ]
    except (ValueError, TypeError):
        return []


def _required_fields(cls: type) -> list[str]:
    if _is_pydantic_model(cls):
        return [name for name, info in cls.model_fields.items() if info.is_required()]  # type: ignore[attr-defined]
    if dataclasses.is_dataclass(cls):
        return [
            f.name
            for f in dataclasses.fields(cls)
            if f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ]
    try:
        sig = inspect.signature(cls.__init__)  # type: ignore[misc]
    except (ValueError, TypeError):
        return []
    return [
        name
        for name, param in sig.parameters.items()
        if name != "self"
        and param.default is inspect.Parameter.empty
        and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
    ]


def new_entity(cls: type[T], values: dict[str, Any] | None = None) -> T:
    """Construct a zero-value entity, filling required fields with None."""
    values = dict(values or {})
    if _is_pydantic_model(cls):
        return cls.model_construct(**values)  # type: ignore[attr-defined, no-any-return]
    for name in _required_fields(cls):
        values.setdefault(name, None)
    known = set(field_names(cls))
    init_values = {k: v for k, v in values.items() if k in known}
    return cls(**init_values)


def get_field(entity: Any, name: str, default: Any = None) -> Any:
    return getattr(entity, name, default)


def put_fields(entity: T, values: dict[str, Any]) -> T:
    """Return a copy of *entity* with *values* applied."""
    if not values:
        return entity
    cls = type(entity)
    if _is_pydantic_model(cls):
        return entity.model_copy(update=values)  # type: ignore[attr-defined, no-any-return]
    if dataclasses.is_dataclass(entity):
        init_names = {f.name for f in dataclasses.fields(entity) if f.init}
        if set(values) <= init_names:
            return dataclasses.replace(entity, **values)  # type: ignore[type-var]
    result = copy.copy(entity)
    for name, value in values.items():
        object.__setattr__(result, name, value)
    return result


def same_type(entities: list[Any]) -> bool:
    """Return True if every entity in the list has the same class."""
    if not entities:
        return True
    first = type(entities[0])
    return all(type(entity) is first for entity in entities)
