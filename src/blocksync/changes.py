"""Change-set entries: the structural edits one reconciliation pass replays.

Five tagged variants, all frozen:

- CreateNode: a node that exists only on the new side
- DeleteNode: a node that exists only on the old side
- AddLink / RemoveLink: a ``(parent, slot, child)`` triple, ``next`` included
- ChangeField: one field of a shared node; ``None`` means "field absent"

Ids are live ids: shared and deleted nodes carry the old side's transient
ids, created nodes the new side's.

"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from blocksync.kinds import NodeType, SlotTokens
from blocksync.nodes import NodeMeta


@dataclass(frozen=True, slots=True)
class CreateNode:
    """Create a node, initially unlinked."""

    node_id: str
    node_type: NodeType
    fields: Mapping[str, str] = field(default_factory=dict)
    meta: NodeMeta | None = None
    tokens: Mapping[str, SlotTokens] = field(default_factory=dict)

    def inverse(self) -> DeleteNode:
        return DeleteNode(self.node_id, self.node_type, self.fields, self.meta, self.tokens)


@dataclass(frozen=True, slots=True)
class DeleteNode:
    """Delete a node that is no longer linked.

    Type, fields, meta and tokens are optional; when present the entry can
    be inverted for undo.
    """

    node_id: str
    node_type: NodeType | None = None
    fields: Mapping[str, str] = field(default_factory=dict)
    meta: NodeMeta | None = None
    tokens: Mapping[str, SlotTokens] = field(default_factory=dict)

    def inverse(self) -> CreateNode:
        if self.node_type is None:
            raise ValueError(f"DeleteNode({self.node_id!r}) carries no type to recreate")
        return CreateNode(self.node_id, self.node_type, self.fields, self.meta, self.tokens)


@dataclass(frozen=True, slots=True)
class AddLink:
    parent_id: str
    slot: str
    child_id: str

    def inverse(self) -> RemoveLink:
        return RemoveLink(self.parent_id, self.slot, self.child_id)


@dataclass(frozen=True, slots=True)
class RemoveLink:
    parent_id: str
    slot: str
    child_id: str

    def inverse(self) -> AddLink:
        return AddLink(self.parent_id, self.slot, self.child_id)


@dataclass(frozen=True, slots=True)
class ChangeField:
    node_id: str
    field: str
    old_value: str | None
    new_value: str | None

    def inverse(self) -> ChangeField:
        return ChangeField(self.node_id, self.field, self.new_value, self.old_value)


ChangeEntry = CreateNode | DeleteNode | AddLink | RemoveLink | ChangeField


@dataclass(frozen=True, slots=True)
class ChangeSet:
    """The structural difference between two models.

    Attributes:
        removed_links: Links present only on the old side
        deletions: Nodes present only on the old side
        creations: Nodes present only on the new side
        added_links: Links present only on the new side
        field_changes: Field differences of shared nodes
        id_map: New transient id to old transient id, for shared nodes

    """

    removed_links: tuple[RemoveLink, ...] = ()
    deletions: tuple[DeleteNode, ...] = ()
    creations: tuple[CreateNode, ...] = ()
    added_links: tuple[AddLink, ...] = ()
    field_changes: tuple[ChangeField, ...] = ()
    id_map: Mapping[str, str] = field(default_factory=dict, compare=False)

    def entries(self) -> tuple[ChangeEntry, ...]:
        """All entries in replay order."""
        return (
            *self.removed_links,
            *self.deletions,
            *self.creations,
            *self.added_links,
            *self.field_changes,
        )

    def __iter__(self) -> Iterator[ChangeEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return (
            len(self.removed_links)
            + len(self.deletions)
            + len(self.creations)
            + len(self.added_links)
            + len(self.field_changes)
        )

    def __bool__(self) -> bool:
        return len(self) > 0

    @property
    def is_empty(self) -> bool:
        return not self

    def summary(self) -> str:
        """One-line count of each entry kind, for logs."""
        return (
            f"+{len(self.creations)} nodes, -{len(self.deletions)} nodes, "
            f"+{len(self.added_links)} links, -{len(self.removed_links)} links, "
            f"~{len(self.field_changes)} fields"
        )
