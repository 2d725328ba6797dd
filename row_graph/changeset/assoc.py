"""Fold relation changes into a parent changeset."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from row_graph.changeset.changeset import Changeset, add_error
from row_graph.changeset.relation import RelationResult, cast_relation, change
from row_graph.core.enums import Action, RelationStatus
from row_graph.mapping.descriptor import NOT_LOADED
from row_graph.mapping.model import get_field

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry
    from row_graph.mapping.protocol import ChangesetFunction


def _without(changes: dict[str, Any], name: str) -> dict[str, Any]:
    return {k: v for k, v in changes.items() if k != name}


def _fold(cs: Changeset, name: str, result: RelationResult) -> Changeset:
    if result.status is RelationStatus.ERROR:
        return add_error(replace(cs, changes=_without(cs.changes, name)), name, "is invalid")
    if not result.any_changes:
        return replace(cs, changes=_without(cs.changes, name))
    return replace(
        cs,
        changes={**cs.changes, name: result.value},
        valid=cs.valid and result.all_valid,
    )


def _empty(value: Any) -> bool:
    if value is None or value is NOT_LOADED:
        return True
    if isinstance(value, Changeset):
        return value.replaced or value.action is Action.DELETE
    if isinstance(value, (list, tuple)):
        return all(_empty(v) if isinstance(v, Changeset) else False for v in value)
    return False


def put_assoc(cs: Changeset, name: str, value: Any, registry: SchemaRegistry) -> Changeset:
    """Replace relation *name* of the changeset's data with *value*.

    *value* is an entity, a changeset, None, or a list of those for a
    plural relation. An unchanged relation leaves no key in ``changes``.

    Raises:
        UnknownAssociationError: If *name* is not an association.
        NotLoadedError: If the relation was not loaded on ``cs.data``.
    """
    assoc = registry.association(cs.entity_type, name)
    current = get_field(cs.data, name, NOT_LOADED)
    return _fold(cs, name, change(registry, assoc, cs.data, value, current))


def cast_assoc(
    cs: Changeset,
    name: str,
    params: Mapping[str, Any] | None,
    registry: SchemaRegistry,
    with_: ChangesetFunction | None = None,
    required: bool = False,
) -> Changeset:
    """Cast ``params[name]`` into relation *name* through nested changesets.

    *params* are the parent params; None means the params the parent
    changeset was cast with. A missing key leaves the relation untouched.

    Raises:
        UnknownAssociationError: If *name* is not an association.
        NotLoadedError: If params for the relation are given but it was not loaded.
    """
    assoc = registry.association(cs.entity_type, name)
    if params is None:
        params = cs.params or {}
    params = {str(k): v for k, v in params.items()}
    if required:
        cs = replace(cs, required=list(cs.required) + [name])

    current = get_field(cs.data, name, NOT_LOADED)
    if name not in params:
        if required and _empty(current):
            return add_error(cs, name, "can't be blank")
        return cs

    cs = _fold(cs, name, cast_relation(registry, assoc, cs.data, params[name], current, with_))
    if required and name in cs.changes and _empty(cs.changes[name]):
        return add_error(cs, name, "can't be blank")
    if required and name not in cs.changes and _empty(current):
        return add_error(cs, name, "can't be blank")
    return cs
