"""Predicate expressions used by built queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class FieldRef:
    """A column of the source bound to ``binding``."""

    binding: str
    name: str

    def __str__(self) -> str:
        return f"{self.binding}.{self.name}"


@dataclass(frozen=True)
class Eq:
    """``left == right`` where both sides are columns."""

    left: FieldRef
    right: FieldRef

    def references(self, a: FieldRef, b: FieldRef) -> bool:
        """True if this condition compares *a* and *b*, in either orientation."""
        return (self.left, self.right) in ((a, b), (b, a))

    def __str__(self) -> str:
        return f"{self.left} == {self.right}"


@dataclass(frozen=True)
class In:
    """``field IN values``. An empty ``values`` tuple matches no rows."""

    field: FieldRef
    values: tuple[Any, ...]

    def __str__(self) -> str:
        return f"{self.field} in {list(self.values)!r}"


Predicate = Union[Eq, In]
