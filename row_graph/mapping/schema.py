"""Compiled schema data class."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from row_graph.mapping.descriptor import Association

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert a CamelCase class name to snake_case.

    >>> underscore("HTTPServer")
    'http_server'
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def association_key(cls: type, suffix: str) -> str:
    """Return the default foreign key pointing at *cls*, e.g. ``post_id``."""
    return f"{underscore(cls.__name__)}_{suffix}"


@dataclass(frozen=True)
class SchemaInfo:
    """Compiled, validated description of one entity type."""

    entity: type
    source: str
    primary_key: str
    fields: tuple[str, ...]
    associations: dict[str, Association] = field(default_factory=dict, hash=False)
    on_cast: Callable[..., Any] | str | None = None

    def association(self, name: str) -> Association | None:
        return self.associations.get(name)

    @property
    def relation_fields(self) -> tuple[str, ...]:
        return tuple(self.associations)
