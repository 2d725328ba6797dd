"""RowGraph exception hierarchy.

Configuration, argument and invariant errors are programming errors and
always propagate. A relation marked invalid by ``on_replace`` is not an
exception: it is returned as data by the reconciler.
"""

from __future__ import annotations

from typing import Any


class RowGraphError(Exception):
    """Base exception for all RowGraph errors."""


# --- Configuration ---


class ConfigurationError(RowGraphError):
    """Base for schema and association configuration errors."""


class SchemaDefinitionError(ConfigurationError):
    """Raised when a schema declaration fails validation during build()."""


class ThroughCycleError(ConfigurationError):
    """Raised when a through association path revisits one of its steps."""

    def __init__(self, field: str, path: list[str]) -> None:
        self.field = field
        self.path = path
        super().__init__(
            f"through association '{field}' is cyclic: {' -> '.join(path)}"
        )


# --- Argument ---


class ArgumentError(RowGraphError, ValueError):
    """Base for invalid arguments supplied by the caller."""


class UnknownAssociationError(ConfigurationError, ArgumentError):
    """Raised when an association name cannot be resolved on a schema."""

    def __init__(self, owner: type, association: str, detail: str | None = None) -> None:
        self.owner = owner
        self.association = association
        message = f"schema {owner.__name__} does not have association '{association}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidPreloadError(ArgumentError):
    """Raised when a preload specification has an unsupported shape."""

    def __init__(self, value: Any, original: Any) -> None:
        self.value = value
        self.original = original
        super().__init__(
            f"invalid preload {value!r} in {original!r}. preload expects a name, "
            "a (nested) mapping or a (nested) list of names"
        )


class PreloadConflictError(ArgumentError):
    """Raised when one association is preloaded twice with incompatible arguments."""

    def __init__(self, association: str, left: Any, right: Any) -> None:
        self.association = association
        super().__init__(
            f"cannot preload '{association}' as it has been supplied more than once "
            f"with incompatible arguments: {left!r} and {right!r}"
        )


class NotLoadedError(ArgumentError):
    """Raised when casting or changing a relation that was never loaded."""

    def __init__(self, field: str, owner: Any) -> None:
        self.field = field
        self.owner = owner
        super().__init__(
            f"attempting to cast or change association '{field}' of {owner!r} "
            "that was not loaded. Please preload your associations before "
            "casting or changing the entity"
        )


# --- Invariant ---


class InvariantViolation(RowGraphError, RuntimeError):
    """Base for violated relation invariants."""


class ReplaceNotAllowedError(InvariantViolation):
    """Raised when a loaded relation member is replaced under on_replace=RAISE."""

    def __init__(self, field: str, owner: type) -> None:
        self.field = field
        self.owner = owner
        super().__init__(
            f"you are attempting to change relation '{field}' of {owner.__name__} "
            "but the :on_replace configuration is set to RAISE. By default it is "
            "not possible to replace or delete embeds and associations during cast. "
            "Set the on_replace option to NILIFY, DELETE, IGNORE or MARK_INVALID "
            "to allow it"
        )


class RelationActionError(InvariantViolation):
    """Raised when a nested changeset action contradicts the parent state."""

    def __init__(self, field: str, action: str, detail: str) -> None:
        self.field = field
        self.action = action
        super().__init__(f"cannot {action} related entity in '{field}': {detail}")
