"""Relation reconciler.

Merges a new value for a relation field (entities, changesets, or raw
params cast through the related type's changeset function) against the
currently loaded value, producing one changeset per affected member:
updates for members matched by primary key, inserts for new ones, and
whatever the ``on_replace`` policy dictates for members that went away.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from row_graph.changeset.changeset import Changeset, change as change_fields, put_new_action
from row_graph.core.enums import Action, Cardinality, OnReplace, RelationStatus
from row_graph.core.exceptions import (
    ArgumentError,
    NotLoadedError,
    RelationActionError,
    ReplaceNotAllowedError,
)
from row_graph.mapping.descriptor import (
    NOT_LOADED,
    Association,
    BelongsTo,
    DirectAssociation,
    is_loaded,
)
from row_graph.mapping.model import get_field, new_entity, put_fields

if TYPE_CHECKING:
    from row_graph.core.registry import SchemaRegistry
    from row_graph.mapping.protocol import ChangesetFunction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationResult:
    """Outcome of reconciling one relation field.

    ``changesets`` holds every changeset produced, removals included, in
    emission order. ``value`` is what the parent stores under the relation
    name: the changeset of the new member (or None) for a singular
    relation, the full ``changesets`` list for a plural one. Removed
    members carry ``replaced=True``.
    """

    status: RelationStatus
    cardinality: Cardinality
    value: Any = None
    changesets: tuple[Changeset, ...] = ()
    any_changes: bool = False
    all_valid: bool = True

    @property
    def ok(self) -> bool:
        return self.status is RelationStatus.OK


def _invalid(assoc: DirectAssociation) -> RelationResult:
    return RelationResult(
        status=RelationStatus.ERROR,
        cardinality=assoc.cardinality,
        value=None,
        any_changes=False,
        all_valid=False,
    )


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _check_changeable(assoc: Association, owner: Any, current: Any) -> DirectAssociation:
    if assoc.is_through:
        raise ArgumentError(
            f"cannot change through association '{assoc.field}' of "
            f"{assoc.owner.__name__}. Change the associations it goes through instead"
        )
    if not is_loaded(current):
        raise NotLoadedError(assoc.field, owner)
    return assoc  # type: ignore[return-value]


# --- Public API ---


def change(
    registry: SchemaRegistry,
    assoc: Association,
    owner: Any,
    new_value: Any,
    current: Any = NOT_LOADED,
) -> RelationResult:
    """Reconcile *new_value* (entities or changesets) against *current*.

    Raises:
        ArgumentError: For through associations, or a changeset over another type.
        NotLoadedError: If *current* was never loaded.
        ReplaceNotAllowedError: If a member is removed under ``OnReplace.RAISE``.
        RelationActionError: If an explicit nested action contradicts the parent.
    """
    direct = _check_changeable(assoc, owner, current)
    items = _new_items(direct, new_value)
    if items is None:
        return _invalid(direct)
    return _reconcile(registry, direct, owner, items, _as_list(current))


def cast_relation(
    registry: SchemaRegistry,
    assoc: Association,
    owner: Any,
    params: Any,
    current: Any = NOT_LOADED,
    with_: ChangesetFunction | None = None,
) -> RelationResult:
    """Reconcile raw *params* against *current*.

    Each params mapping is cast through *with_*, the association's
    ``on_cast`` or the related schema's changeset function. Params whose
    primary key matches a current member update that member; the rest
    build new entities.

    Raises:
        The same errors as :func:`change`.
    """
    direct = _check_changeable(assoc, owner, current)
    entries = _param_list(direct, params)
    if entries is None:
        return _invalid(direct)

    fn = with_ or registry.changeset_fn(direct.related, direct.on_cast)
    pk = registry.primary_key_of(direct.related)
    current_list = _as_list(current)

    # Params arrive as strings; match keys by their string form.
    index: dict[str, Any] = {}
    for item in current_list:
        identity = get_field(item, pk)
        if identity is not None:
            index.setdefault(str(identity), item)

    items: list[Changeset] = []
    used: set[str] = set()
    for entry in entries:
        raw = entry.get(pk)
        key = None if raw is None else str(raw)
        if key is not None and key in index and key not in used:
            used.add(key)
            cs = fn(index[key], {k: v for k, v in entry.items() if k != pk})
        else:
            cs = fn(new_entity(direct.related), entry)
        if not isinstance(cs, Changeset):
            raise ArgumentError(
                f"changeset function for '{direct.field}' must return a Changeset, got: {cs!r}"
            )
        items.append(cs)

    return _reconcile(registry, direct, owner, items, current_list)


# --- Input shapes ---


def _new_items(assoc: DirectAssociation, value: Any) -> list[Any] | None:
    if assoc.cardinality is Cardinality.ONE:
        candidates = [] if value is None else [value]
    elif value is None:
        candidates = []
    elif isinstance(value, (list, tuple)):
        candidates = list(value)
    else:
        return None

    for item in candidates:
        if isinstance(item, Changeset):
            if not isinstance(item.data, assoc.related):
                raise ArgumentError(
                    f"expected changeset data in '{assoc.field}' to be a "
                    f"{assoc.related.__name__}, got: {type(item.data).__name__}"
                )
        elif not isinstance(item, assoc.related):
            return None
    return candidates


def _index_key(key: Any) -> tuple[int, Any]:
    text = str(key)
    return (0, int(text)) if text.isdigit() else (1, text)


def _param_list(assoc: DirectAssociation, params: Any) -> list[dict[str, Any]] | None:
    if assoc.cardinality is Cardinality.ONE:
        if params is None:
            return []
        entries = [params]
    elif isinstance(params, Mapping):
        # {"0": {...}, "1": {...}} as sent by HTML forms.
        entries = [v for _, v in sorted(params.items(), key=lambda kv: _index_key(kv[0]))]
    elif isinstance(params, (list, tuple)):
        entries = list(params)
    else:
        return None

    if not all(isinstance(entry, Mapping) for entry in entries):
        return None
    return [{str(k): v for k, v in entry.items()} for entry in entries]


# --- Reconciliation ---


def _identity(item: Any, pk: str) -> Any:
    if isinstance(item, Changeset):
        identity = get_field(item.data, pk)
        return identity if identity is not None else item.changes.get(pk)
    return get_field(item, pk)


def _reconcile(
    registry: SchemaRegistry,
    assoc: DirectAssociation,
    owner: Any,
    items: list[Any],
    current: list[Any],
) -> RelationResult:
    pk = registry.primary_key_of(assoc.related)

    index: dict[Any, Any] = {}
    for item in current:
        identity = get_field(item, pk)
        if identity is not None:
            index.setdefault(identity, item)

    matched: set[Any] = set()
    for item in items:
        identity = _identity(item, pk)
        if identity is None or identity not in index:
            continue
        if identity in matched:
            raise RelationActionError(
                assoc.field,
                "update",
                f"{assoc.related.__name__} with {pk}={identity!r} is given more than once",
            )
        matched.add(identity)

    removed = [
        item
        for item in current
        if get_field(item, pk) is None or get_field(item, pk) not in matched
    ]

    # Replacement policy is enforced before any changeset is built.
    if removed:
        if assoc.on_replace is OnReplace.RAISE:
            raise ReplaceNotAllowedError(assoc.field, assoc.owner)
        if assoc.on_replace is OnReplace.MARK_INVALID:
            logger.debug(
                "relation %s.%s marked invalid: %d member(s) replaced",
                assoc.owner.__name__,
                assoc.field,
                len(removed),
            )
            return _invalid(assoc)

    removals = [cs for cs in (_removal(assoc, item) for item in removed) if cs is not None]
    membership_changed = bool(removed) and assoc.on_replace is not OnReplace.IGNORE

    changesets: list[Changeset] = []
    kept: list[Changeset] = []
    flushed = False
    for item in items:
        identity = _identity(item, pk)
        if identity is not None and identity in index:
            cs = _update(registry, assoc, item, index[identity], pk)
        else:
            if not flushed:
                # Removed members go out right before the first insert.
                changesets.extend(removals)
                flushed = True
            cs = _insert(registry, assoc, owner, item)
        changesets.append(cs)
        kept.append(cs)
    if not flushed:
        changesets.extend(removals)

    any_changes = membership_changed or not all(_skippable(cs) for cs in changesets)
    all_valid = all(cs.valid for cs in changesets)
    logger.debug(
        "reconciled %s.%s: %d insert(s), %d update(s), %d removed (%s)",
        assoc.owner.__name__,
        assoc.field,
        sum(1 for cs in kept if cs.action is Action.INSERT),
        sum(1 for cs in kept if cs.action is Action.UPDATE),
        len(removed),
        assoc.on_replace.value,
    )

    if assoc.cardinality is Cardinality.ONE:
        value: Any = kept[0] if kept else None
    else:
        value = list(changesets)

    return RelationResult(
        status=RelationStatus.OK,
        cardinality=assoc.cardinality,
        value=value,
        changesets=tuple(changesets),
        any_changes=any_changes,
        all_valid=all_valid,
    )


def _skippable(cs: Changeset) -> bool:
    return cs.valid and not cs.changes and cs.action is Action.UPDATE and not cs.replaced


def _schema_fields(registry: SchemaRegistry, entity_type: type) -> tuple[str, ...]:
    return registry.get_schema(entity_type).fields


def _update(
    registry: SchemaRegistry, assoc: DirectAssociation, item: Any, current: Any, pk: str
) -> Changeset:
    if isinstance(item, Changeset):
        if item.action is Action.INSERT:
            raise RelationActionError(
                assoc.field,
                "insert",
                f"{assoc.related.__name__} with {pk}={get_field(current, pk)!r} "
                "already exists in the parent",
            )
        return put_new_action(item, Action.UPDATE)

    # Plain entities are diffed on their scalar fields only.
    values = {name: get_field(item, name) for name in _schema_fields(registry, assoc.related)}
    cs = change_fields(current, values)
    return replace(cs, action=Action.UPDATE)


def _insert(registry: SchemaRegistry, assoc: DirectAssociation, owner: Any, item: Any) -> Changeset:
    stamp: dict[str, Any] = {}
    if not isinstance(assoc, BelongsTo):
        stamp[assoc.related_key] = get_field(owner, assoc.owner_key)
    defaults = assoc.defaults if assoc.cardinality is Cardinality.ONE else {}

    if isinstance(item, Changeset):
        if item.action in (Action.UPDATE, Action.DELETE):
            raise RelationActionError(
                assoc.field,
                item.action.value,
                f"{assoc.related.__name__} does not exist in the parent",
            )
        values = {
            name: value
            for name, value in defaults.items()
            if name not in item.changes and get_field(item.data, name) is None
        }
        values.update(stamp)
        cs = replace(change_fields(item, values), action=Action.INSERT)
    else:
        values = {name: value for name, value in defaults.items() if get_field(item, name) is None}
        values.update(stamp)
        data = put_fields(item, values)
        zero = new_entity(assoc.related)
        changes = {
            name: get_field(data, name)
            for name in _schema_fields(registry, assoc.related)
            if get_field(data, name) != get_field(zero, name)
        }
        cs = Changeset(data=data, changes=changes, action=Action.INSERT)
    return _insert_children(registry, cs)


def _insert_children(registry: SchemaRegistry, cs: Changeset) -> Changeset:
    """Turn the loaded has-one/has-many values of a new entity into nested inserts.

    Relations already present in ``cs.changes`` are left as given.
    """
    fields = _schema_fields(registry, cs.entity_type)
    owner = put_fields(cs.data, {k: v for k, v in cs.changes.items() if k in fields})
    changes = dict(cs.changes)
    errors = list(cs.errors)
    valid = cs.valid

    for name, child in registry.get_schema(cs.entity_type).associations.items():
        if child.is_through or isinstance(child, BelongsTo) or name in changes:
            continue
        value = get_field(cs.data, name, NOT_LOADED)
        if not is_loaded(value):
            continue
        items = _new_items(child, value)  # type: ignore[arg-type]
        if items is None:
            errors.append((name, "is invalid"))
            valid = False
            continue
        result = _reconcile(registry, child, owner, items, [])  # type: ignore[arg-type]
        if result.any_changes:
            changes[name] = result.value
            valid = valid and result.all_valid

    return replace(cs, changes=changes, errors=errors, valid=valid)


def _removal(assoc: DirectAssociation, item: Any) -> Changeset | None:
    if assoc.on_replace is OnReplace.DELETE:
        return Changeset(data=item, action=Action.DELETE, replaced=True)
    if assoc.on_replace is OnReplace.NILIFY and not isinstance(assoc, BelongsTo):
        return Changeset(
            data=item,
            changes={assoc.related_key: None},
            action=Action.UPDATE,
            replaced=True,
        )
    # Ignored, or a detached belongs-to parent: the owner's own key changes instead.
    return None
