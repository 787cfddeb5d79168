"""Edit applier: replay a change set onto a live node model.

The whole entry sequence is first checked against a lightweight simulation
of the model. Any precondition violation raises StructuralEditError before
the first mutation, so a change set is applied entirely or not at all.

Each applied entry is one NodeModel mutation, publishes exactly one model
event, and yields its inverse entry. The returned AppliedChangeSet can be
undone entry by entry with ``undo_change_set``.

Example:
    >>> from blocksync import build, reconcile
    >>> model = build('[1,2]')
    >>> applied = apply_change_set(model, reconcile(model, '[1,2,3]'))
    >>> len(applied)
    2

"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, overload

from blocksync.changes import (
    AddLink,
    ChangeEntry,
    ChangeField,
    ChangeSet,
    CreateNode,
    DeleteNode,
    RemoveLink,
)
from blocksync.errors import StructuralEditError
from blocksync.kinds import NEXT, NodeType, slot_names
from blocksync.nodes import NodeModel
from blocksync.utils.logger import get_logger

if TYPE_CHECKING:
    from blocksync.patcher import TextPatch

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AppliedChangeSet:
    """Entries that were applied, with their inverses in the same order."""

    entries: tuple[ChangeEntry, ...]
    inverses: tuple[ChangeEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)


@overload
def apply_change_set(target: NodeModel, change_set: ChangeSet) -> AppliedChangeSet: ...


@overload
def apply_change_set(
    target: str,
    change_set: ChangeSet,
    *,
    text_model: NodeModel,
    model: NodeModel,
) -> TextPatch: ...


def apply_change_set(
    target: NodeModel | str,
    change_set: ChangeSet,
    *,
    text_model: NodeModel | None = None,
    model: NodeModel | None = None,
) -> AppliedChangeSet | TextPatch:
    """Apply ``change_set`` to a live model, or to a text buffer.

    For a model, entries are replayed in ``ChangeSet.entries()`` order.

    For text, the change set must have been computed from ``text_model``
    (the model built from ``target``) to ``model`` (the edited live model);
    the text is patched with minimal splices.

    Raises:
        StructuralEditError: If any entry violates a precondition. Nothing
            has been applied in that case.

    """
    if isinstance(target, str):
        from blocksync.patcher import patch_text

        if text_model is None or model is None:
            raise TypeError("Patching text needs both text_model and model")
        return patch_text(target, text_model, model, change_set)
    return apply_entries(target, change_set.entries())


def apply_entries(model: NodeModel, entries: Iterable[ChangeEntry]) -> AppliedChangeSet:
    """Validate, then apply, a sequence of entries in order."""
    entries = tuple(entries)
    _Simulation(model).check(entries)

    inverses: list[ChangeEntry] = []
    for entry in entries:
        inverses.append(_apply_one(model, entry))
    if entries:
        logger.debug("Applied %d change-set entries", len(entries))
    return AppliedChangeSet(entries=entries, inverses=tuple(inverses))


def undo_change_set(model: NodeModel, applied: AppliedChangeSet) -> AppliedChangeSet:
    """Revert ``applied`` by replaying its inverses in reverse order."""
    return apply_entries(model, reversed(applied.inverses))


def _apply_one(model: NodeModel, entry: ChangeEntry) -> ChangeEntry:
    match entry:
        case CreateNode():
            model.create_node(
                entry.node_type,
                entry.fields,
                node_id=entry.node_id,
                tokens=entry.tokens,
                meta=entry.meta,
            )
            return entry.inverse()
        case DeleteNode():
            node = model[entry.node_id]
            inverse = CreateNode(
                node.id, node.type, dict(node.fields), node.meta, dict(node.tokens)
            )
            model.delete_node(node)
            return inverse
        case AddLink():
            model.link(model[entry.parent_id], entry.slot, model[entry.child_id])
            return entry.inverse()
        case RemoveLink():
            model.unlink(model[entry.parent_id], entry.slot)
            return entry.inverse()
        case ChangeField():
            model.set_field(model[entry.node_id], entry.field, entry.new_value)
            return entry.inverse()
    raise StructuralEditError(entry, "Unknown change-set entry")


class _Simulation:
    """Id-level shadow of a model, used to check preconditions up front."""

    __slots__ = ("_types", "_links", "_incoming", "_outgoing", "_fields")

    def __init__(self, model: NodeModel) -> None:
        self._types: dict[str, NodeType] = {}
        self._links: dict[tuple[str, str], str] = {}
        self._incoming: dict[str, tuple[str, str]] = {}
        self._outgoing: dict[str, int] = {}
        self._fields: dict[str, dict[str, str]] = {}
        for node in model:
            self._types[node.id] = node.type
            self._fields[node.id] = dict(node.fields)
            for slot, child in node.slots.items():
                if child is not None:
                    self._add(node.id, slot, child.id)
            if node.next is not None:
                self._add(node.id, NEXT, node.next.id)

    def _add(self, parent: str, slot: str, child: str) -> None:
        self._links[(parent, slot)] = child
        self._incoming[child] = (parent, slot)
        self._outgoing[parent] = self._outgoing.get(parent, 0) + 1

    def check(self, entries: Sequence[ChangeEntry]) -> None:
        for entry in entries:
            self._step(entry)

    def _require_node(self, entry: ChangeEntry, node_id: str) -> NodeType:
        node_type = self._types.get(node_id)
        if node_type is None:
            raise StructuralEditError(entry, f"Unknown node {node_id!r}")
        return node_type

    def _step(self, entry: ChangeEntry) -> None:
        match entry:
            case CreateNode():
                if entry.node_id in self._types:
                    raise StructuralEditError(entry, "Node id already exists")
                self._types[entry.node_id] = entry.node_type
                self._fields[entry.node_id] = dict(entry.fields)
            case DeleteNode():
                self._require_node(entry, entry.node_id)
                if entry.node_id in self._incoming or self._outgoing.get(entry.node_id):
                    raise StructuralEditError(entry, "Node is still linked")
                del self._types[entry.node_id]
                del self._fields[entry.node_id]
            case AddLink():
                parent_type = self._require_node(entry, entry.parent_id)
                self._require_node(entry, entry.child_id)
                if entry.slot != NEXT and entry.slot not in slot_names(parent_type):
                    raise StructuralEditError(
                        entry, f"No slot {entry.slot!r} on {parent_type.value}"
                    )
                if (entry.parent_id, entry.slot) in self._links:
                    raise StructuralEditError(entry, "Slot is occupied")
                if entry.child_id in self._incoming:
                    raise StructuralEditError(entry, "Child is already linked")
                if entry.child_id == entry.parent_id:
                    raise StructuralEditError(entry, "Link would create a cycle")
                # A child without outgoing links cannot be above its new parent.
                ancestor = entry.parent_id if self._outgoing.get(entry.child_id) else None
                while ancestor is not None:
                    if ancestor == entry.child_id:
                        raise StructuralEditError(entry, "Link would create a cycle")
                    above = self._incoming.get(ancestor)
                    ancestor = above[0] if above else None
                self._add(entry.parent_id, entry.slot, entry.child_id)
            case RemoveLink():
                if self._links.get((entry.parent_id, entry.slot)) != entry.child_id:
                    raise StructuralEditError(entry, "Link is not present")
                del self._links[(entry.parent_id, entry.slot)]
                del self._incoming[entry.child_id]
                self._outgoing[entry.parent_id] -= 1
            case ChangeField():
                self._require_node(entry, entry.node_id)
                fields = self._fields[entry.node_id]
                if fields.get(entry.field) != entry.old_value:
                    raise StructuralEditError(entry, "Field does not hold the expected value")
                if entry.new_value is None:
                    fields.pop(entry.field, None)
                else:
                    fields[entry.field] = entry.new_value
            case _:
                raise StructuralEditError(entry, "Unknown change-set entry")
