"""Association and changeset enumerations."""

from __future__ import annotations

from enum import Enum


class AssociationKind(Enum):
    """Supported association kinds."""

    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    HAS_ONE_THROUGH = "has_one_through"
    HAS_MANY_THROUGH = "has_many_through"


class Cardinality(Enum):
    ONE = "one"
    MANY = "many"


class OnReplace(Enum):
    """Policy applied when a loaded relation member is replaced or removed."""

    RAISE = "raise"
    MARK_INVALID = "mark_as_invalid"
    NILIFY = "nilify"
    DELETE = "delete"
    IGNORE = "ignore"


class Action(Enum):
    """Pending persistence action of a changeset."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class RelationStatus(Enum):
    OK = "ok"
    ERROR = "error"
