"""Changeset value object and helpers.

A changeset wraps an entity with the field changes staged against it,
the validation errors found so far and the persistence action the
changes call for. Changesets are immutable; every helper returns a new one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from row_graph.core.enums import Action
from row_graph.core.exceptions import ArgumentError
from row_graph.mapping.model import get_field, put_fields

_MISSING = object()


@dataclass(frozen=True)
class Changeset:
    """Staged changes against ``data``.

    Attributes:
        data: The entity the changes apply to.
        changes: Field name to new value, only for values that differ.
            Relation fields hold a nested changeset or a list of them.
        errors: ``(field, message)`` pairs.
        valid: False once any error was recorded, here or in a nested changeset.
        action: Pending persistence action, or None while undecided.
        required: Fields checked for presence by ``cast``.
        optional: Other fields permitted by ``cast``.
        params: The raw params given to ``cast``, read by ``cast_assoc``.
        replaced: Marks a member removed from its parent relation.
    """

    data: Any
    changes: dict[str, Any] = field(default_factory=dict)
    errors: list[tuple[str, str]] = field(default_factory=list)
    valid: bool = True
    action: Action | None = None
    required: list[str] = field(default_factory=list)
    optional: list[str] = field(default_factory=list)
    params: dict[str, Any] | None = None
    replaced: bool = False

    @property
    def entity_type(self) -> type:
        return type(self.data)

    def get_field(self, name: str, default: Any = None) -> Any:
        """Value of *name* with pending changes applied."""
        if name in self.changes:
            return self.changes[name]
        return get_field(self.data, name, default)

    def get_change(self, name: str, default: Any = None) -> Any:
        return self.changes.get(name, default)


def _diff(data: Any, values: Mapping[str, Any]) -> dict[str, Any]:
    return {
        name: value
        for name, value in values.items()
        if get_field(data, name, _MISSING) != value
    }


def change(data: Any, changes: Mapping[str, Any] | None = None) -> Changeset:
    """Wrap an entity (or extend a changeset) with the values that differ from it."""
    if isinstance(data, Changeset):
        merged = dict(data.changes)
        for name, value in (changes or {}).items():
            if get_field(data.data, name, _MISSING) != value:
                merged[name] = value
            else:
                merged.pop(name, None)
        return replace(data, changes=merged)
    return Changeset(data=data, changes=_diff(data, changes or {}))


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def cast(
    data: Any,
    params: Mapping[str, Any],
    required: Iterable[str] = (),
    optional: Iterable[str] = (),
) -> Changeset:
    """Build a changeset from user params, keeping only permitted keys.

    Keys are matched as strings. Required fields that end up blank get a
    ``"can't be blank"`` error.

    Raises:
        ArgumentError: If *params* is not a mapping.
    """
    if not isinstance(params, Mapping):
        raise ArgumentError(f"expected params to be a mapping, got: {params!r}")

    cs = data if isinstance(data, Changeset) else Changeset(data=data)
    required = list(required)
    optional = list(optional)
    params = {str(k): v for k, v in params.items()}

    changes = dict(cs.changes)
    for name in required + optional:
        if name not in params:
            continue
        value = params[name]
        if get_field(cs.data, name, _MISSING) != value:
            changes[name] = value
        else:
            changes.pop(name, None)

    errors = list(cs.errors)
    for name in required:
        if _blank(changes.get(name, get_field(cs.data, name))):
            errors.append((name, "can't be blank"))

    return replace(
        cs,
        changes=changes,
        errors=errors,
        valid=cs.valid and len(errors) == len(cs.errors),
        required=list(cs.required) + required,
        optional=list(cs.optional) + optional,
        params={**(cs.params or {}), **params},
    )


def put_change(cs: Changeset, name: str, value: Any) -> Changeset:
    return change(cs, {name: value})


def add_error(cs: Changeset, name: str, message: str) -> Changeset:
    return replace(cs, errors=cs.errors + [(name, message)], valid=False)


def put_action(cs: Changeset, action: Action | None) -> Changeset:
    return replace(cs, action=action)


def put_new_action(cs: Changeset, action: Action) -> Changeset:
    """Set *action* unless one was already chosen."""
    if cs.action is not None:
        return cs
    return replace(cs, action=action)


def _kept(cs: Changeset) -> bool:
    return not cs.replaced and cs.action is not Action.DELETE


def apply_changes(cs: Changeset) -> Any:
    """Return ``data`` with every change applied, nested relations included.

    Members removed from a relation (deleted or detached) are dropped.
    """
    values: dict[str, Any] = {}
    for name, value in cs.changes.items():
        if isinstance(value, Changeset):
            values[name] = apply_changes(value) if _kept(value) else None
        elif isinstance(value, list) and value and all(isinstance(v, Changeset) for v in value):
            values[name] = [apply_changes(v) for v in value if _kept(v)]
        else:
            values[name] = value
    return put_fields(cs.data, values)


def traverse_errors(cs: Changeset) -> dict[str, Any]:
    """Collect errors of *cs* and its nested changesets into a plain dict."""
    result: dict[str, Any] = {}
    for name, message in cs.errors:
        result.setdefault(name, []).append(message)
    for name, value in cs.changes.items():
        if isinstance(value, Changeset):
            nested = traverse_errors(value)
            if nested:
                result[name] = nested
        elif isinstance(value, list) and any(isinstance(v, Changeset) for v in value):
            nested_list = [traverse_errors(v) for v in value if isinstance(v, Changeset)]
            if any(nested_list):
                result[name] = nested_list
    return result
