"""Mutable node model edited by the block editor.

A NodeModel owns every Node in one document. Nodes are linked two ways:

- slots: each node type owns fixed slot names (see ``blocksync.kinds``); a
  slot holds at most one child, the head of a sibling chain
- next: the reserved pseudo-slot chaining siblings within one container

Every mutation goes through a NodeModel method and publishes exactly one
ModelEvent to subscribed listeners. Back-references (parent, parent slot and
owning container) are updated at link time, so upward lookups are O(1).

Traversals use explicit stacks. Sibling chains can be arbitrarily long and
must never drive recursion depth.

Thread Safety:
NodeModel is not thread-safe. It is owned by a single Session (or caller)
and mutated from one thread.

"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from blocksync.errors import StructuralEditError
from blocksync.kinds import NEXT, NodeType, SlotTokens, kind_of, slot_names
from blocksync.location import SourceLocation


def new_node_id() -> str:
    """Fresh transient id, unique across all models in the process."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class NodeMeta:
    """Span metadata captured from the last successful parse.

    Not part of a node's logical value: snapshots omit it and reconciliation
    never compares it.

    Attributes:
        span: Whole node
        field_spans: Literal text of each field
        slot_spans: Region of each occupied slot, prefix and suffix included
        source_hash: Fingerprint of the text the spans were measured against

    """

    span: SourceLocation
    field_spans: Mapping[str, SourceLocation] = field(default_factory=dict)
    slot_spans: Mapping[str, SourceLocation] = field(default_factory=dict)
    source_hash: str | None = None


@dataclass(eq=False, slots=True)
class Node:
    """One node of the model.

    Identity is the object itself (``eq=False``); ``id`` is the transient
    key used in change sets. Link attributes are maintained by NodeModel and
    must not be assigned directly.

    """

    id: str
    type: NodeType
    fields: dict[str, str] = field(default_factory=dict)
    slots: dict[str, Node | None] = field(default_factory=dict)
    next: Node | None = None
    tokens: dict[str, SlotTokens] = field(default_factory=dict)
    meta: NodeMeta | None = None
    parent: Node | None = None
    parent_slot: str | None = None
    container: tuple[Node, str] | None = None

    def __post_init__(self) -> None:
        for name in slot_names(self.type):
            self.slots.setdefault(name, None)

    def __repr__(self) -> str:
        label = self.fields.get("KEY") or self.fields.get("VALUE") or ""
        return f"Node({self.type.value}, {self.id[:8]!r}{', ' + label if label else ''})"

    def chain(self) -> Iterator[Node]:
        """This node and its following siblings."""
        node: Node | None = self
        while node is not None:
            yield node
            node = node.next

    def children(self, slot: str) -> list[Node]:
        """Sibling chain hanging from ``slot``, in order."""
        head = self.slots.get(slot)
        return list(head.chain()) if head is not None else []

    @property
    def is_root(self) -> bool:
        return self.parent is None


def iter_subtree(node: Node, *, include_next: bool = False) -> Iterator[Node]:
    """Pre-order walk of ``node`` and everything below it.

    Slots are visited in the kind's layout order. A sibling comes after the
    complete subtree of the sibling before it. With ``include_next`` the
    starting node's own following siblings are walked too.
    """
    stack: list[Node] = [node]
    first = True
    while stack:
        current = stack.pop()
        yield current
        if current.next is not None and (include_next or not first):
            stack.append(current.next)
        first = False
        for slot in reversed(slot_names(current.type)):
            child = current.slots.get(slot)
            if child is not None:
                stack.append(child)


def descendant_count(node: Node) -> int:
    """Number of nodes reachable from a top-level node, itself excluded."""
    return sum(1 for _ in iter_subtree(node, include_next=True)) - 1


class EventKind(Enum):
    """Kinds of model mutation."""

    CREATE = "create"
    DELETE = "delete"
    LINK = "link"
    UNLINK = "unlink"
    FIELD = "field"


@dataclass(frozen=True, slots=True)
class ModelEvent:
    """Notification published once per model mutation."""

    kind: EventKind
    node_id: str
    slot: str | None = None
    child_id: str | None = None
    field: str | None = None
    old_value: str | None = None
    new_value: str | None = None


Listener = Callable[[ModelEvent], None]


class NodeModel:
    """A document: ordered top-level nodes plus surrounding text.

    Usually there is one root. Transient edit states (a node just created,
    a chain just detached) add more top-level nodes until they are linked or
    deleted.

    Attributes:
        leading: Text before the first top-level node
        trailing: Text after the last top-level node
        source_hash: Fingerprint of the text this model mirrors, if any

    """

    __slots__ = ("_nodes", "_roots", "_listeners", "leading", "trailing", "source_hash")

    def __init__(self, *, leading: str = "", trailing: str = "") -> None:
        self._nodes: dict[str, Node] = {}
        self._roots: list[Node] = []
        self._listeners: list[Listener] = []
        self.leading = leading
        self.trailing = trailing
        self.source_hash: str | None = None

    # -- queries -----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        for root in list(self._roots):
            yield from iter_subtree(root, include_next=True)

    def __getitem__(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def get(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    @property
    def roots(self) -> tuple[Node, ...]:
        """Top-level nodes in document order."""
        return tuple(self._roots)

    @property
    def root(self) -> Node | None:
        """The first top-level node, or None for an empty model."""
        return self._roots[0] if self._roots else None

    # -- notification ------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every future mutation.

        Returns:
            A callable that removes the listener again.

        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: ModelEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # -- primitive mutations (one event each) -------------------------------

    def create_node(
        self,
        node_type: NodeType,
        fields: Mapping[str, str] | None = None,
        *,
        node_id: str | None = None,
        tokens: Mapping[str, SlotTokens] | None = None,
        meta: NodeMeta | None = None,
    ) -> Node:
        """Create an unlinked top-level node."""
        node_id = node_id or new_node_id()
        if node_id in self._nodes:
            raise StructuralEditError(node_id, "Node id already exists")
        node = Node(
            id=node_id,
            type=node_type,
            fields=dict(fields or {}),
            tokens=dict(tokens or {}),
            meta=meta,
        )
        self._nodes[node_id] = node
        self._roots.append(node)
        self._publish(ModelEvent(EventKind.CREATE, node_id))
        return node

    def delete_node(self, node: Node) -> None:
        """Destroy a node that is no longer linked anywhere."""
        if self._nodes.get(node.id) is not node:
            raise StructuralEditError(node.id, "Node is not part of this model")
        if node.parent is not None or node.next is not None or any(
            child is not None for child in node.slots.values()
        ):
            raise StructuralEditError(node.id, "Node is still linked")
        del self._nodes[node.id]
        self._roots.remove(node)
        self._publish(ModelEvent(EventKind.DELETE, node.id))

    def link(self, parent: Node, slot: str, child: Node) -> None:
        """Attach the top-level ``child`` (with its chain) to ``parent.slot``."""
        self._check_slot(parent, slot)
        if self._slot_child(parent, slot) is not None:
            raise StructuralEditError((parent.id, slot), "Slot is occupied")
        if child.parent is not None:
            raise StructuralEditError(child.id, "Child is already linked")
        if _top(parent) is child:
            raise StructuralEditError(child.id, "Link would create a cycle")

        if slot == NEXT:
            parent.next = child
            container = parent.container
        else:
            parent.slots[slot] = child
            container = (parent, slot)
        child.parent = parent
        child.parent_slot = slot
        self._roots.remove(child)
        for member in child.chain():
            member.container = container
        self._publish(ModelEvent(EventKind.LINK, parent.id, slot=slot, child_id=child.id))

    def unlink(self, parent: Node, slot: str) -> Node:
        """Detach the child at ``parent.slot``; it becomes a top-level node."""
        self._check_slot(parent, slot)
        child = self._slot_child(parent, slot)
        if child is None:
            raise StructuralEditError((parent.id, slot), "Slot is empty")
        if slot == NEXT:
            parent.next = None
        else:
            parent.slots[slot] = None
        child.parent = None
        child.parent_slot = None
        for member in child.chain():
            member.container = None
        self._roots.append(child)
        self._publish(ModelEvent(EventKind.UNLINK, parent.id, slot=slot, child_id=child.id))
        return child

    def set_field(self, node: Node, name: str, value: str | None) -> None:
        """Set a field, or remove it when ``value`` is None."""
        old = node.fields.get(name)
        if value is None:
            node.fields.pop(name, None)
        else:
            node.fields[name] = value
        self._publish(
            ModelEvent(EventKind.FIELD, node.id, field=name, old_value=old, new_value=value)
        )

    # -- editor conveniences (several events) --------------------------------

    def insert_after(self, anchor: Node, node: Node) -> None:
        """Splice the top-level ``node`` into ``anchor``'s chain right after it."""
        rest = self.unlink(anchor, NEXT) if anchor.next is not None else None
        self.link(anchor, NEXT, node)
        if rest is not None:
            self.link(node, NEXT, rest)

    def append_child(self, parent: Node, slot: str, node: Node) -> None:
        """Add the top-level ``node`` at the end of ``parent.slot``'s chain."""
        head = parent.slots.get(slot)
        if head is None:
            self.link(parent, slot, node)
            return
        *_, last = head.chain()
        self.link(last, NEXT, node)

    def detach(self, node: Node) -> None:
        """Take ``node`` out of its chain, closing the gap behind it."""
        parent, slot = node.parent, node.parent_slot
        if parent is None or slot is None:
            return
        self.unlink(parent, slot)
        if node.next is not None:
            rest = self.unlink(node, NEXT)
            self.link(parent, slot, rest)

    def remove(self, node: Node) -> None:
        """Detach ``node`` and delete it together with its subtree."""
        self.detach(node)
        members = list(iter_subtree(node))
        for member in reversed(members):
            for slot in (NEXT, *slot_names(member.type)):
                if self._slot_child(member, slot) is not None:
                    self.unlink(member, slot)
        for member in members:
            self.delete_node(member)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _slot_child(parent: Node, slot: str) -> Node | None:
        return parent.next if slot == NEXT else parent.slots.get(slot)

    @staticmethod
    def _check_slot(parent: Node, slot: str) -> None:
        if slot != NEXT and slot not in kind_of(parent.type).slots:
            raise StructuralEditError(
                (parent.id, slot), f"{parent.type.value} has no slot {slot!r}"
            )


def _top(node: Node) -> Node:
    """Top-level node whose tree holds ``node``; jumps whole chains at once."""
    current = node
    while current.parent is not None:
        current = current.container[0] if current.container is not None else current.parent
    return current
