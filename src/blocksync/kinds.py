"""Closed vocabulary of node types and their per-type rules.

Every node-model node has a NodeType. Each type has exactly one NodeKind in
the KINDS registry, which supplies:

- the slot names the type owns (fixed per type),
- the field names it renders,
- the render layout (the order fields and slots are emitted in),
- generation rules: default SlotTokens for nodes created in the editor,
- inference rules: SlotTokens sampled from the source around parsed children.

Node Types:
    object   slot MEMBERS   (chain of pairs)        ``{"a": 1, "b": 2}``
    array    slot ITEMS     (chain of values)       ``[1, 2, 3]``
    pair     field KEY, field VALUE or slot VALUE   ``"a": 1`` / ``"a": [..]``
    scalar   field VALUE                            ``1``, ``"x"``, ``null``

The registry is checked for completeness at import time.

"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from blocksync.errors import RenderError

if TYPE_CHECKING:
    from blocksync.location import SourceLocation
    from blocksync.nodes import Node

# Reserved pseudo-slot name for the sibling chain
NEXT = "next"

MEMBERS = "MEMBERS"
ITEMS = "ITEMS"
KEY = "KEY"
VALUE = "VALUE"


class NodeType(Enum):
    """Type tags of node-model nodes."""

    OBJECT = "object"
    ARRAY = "array"
    PAIR = "pair"
    SCALAR = "scalar"


@dataclass(frozen=True, slots=True)
class SlotTokens:
    """Formatting tokens for one slot of one node.

    Attributes:
        prefix: Text before the first sibling (``"{"``, ``"[\\n  "``, ``": "``)
        suffix: Text after the last sibling
        separator: Text between consecutive siblings
        indent: Whitespace after the last newline of the separator
            (empty for flat formatting)
        trailing_separator: Emit the separator after the last sibling too

    """

    prefix: str = ""
    suffix: str = ""
    separator: str = ""
    indent: str = ""
    trailing_separator: bool = False

    @property
    def transparent(self) -> bool:
        """True when the slot has no surrounding punctuation."""
        return not self.prefix and not self.suffix


@dataclass(frozen=True, slots=True)
class ChainPart:
    """Render-layout marker: emit the sibling chain starting at ``head``."""

    head: Node
    separator: str
    trailing: bool


# A layout is a flat sequence of literal text and chains to expand.
LayoutPart = str | ChainPart


def indent_of(separator: str) -> str:
    """Whitespace run following the last newline in ``separator``."""
    newline = separator.rfind("\n")
    if newline == -1:
        return ""
    tail = separator[newline + 1 :]
    return tail[: len(tail) - len(tail.lstrip(" \t"))]


def empty_prefix(tokens: SlotTokens) -> str:
    """Prefix to emit for a slot whose multi-line chain lost every sibling.

    The indent that led the first sibling is dropped, and so is its newline
    when the suffix opens a line of its own, leaving ``"[\\n]"`` rather
    than a whitespace-only line.
    """
    prefix = tokens.prefix
    if not tokens.indent or not prefix.endswith("\n" + tokens.indent):
        return prefix
    prefix = prefix[: -len(tokens.indent)]
    if tokens.suffix.startswith("\n"):
        prefix = prefix[:-1]
    return prefix


class NodeKind:
    """Rules for one node type. Subclasses are the closed set in KINDS."""

    type: NodeType
    slots: tuple[str, ...] = ()
    fields: tuple[str, ...] = ()

    def tokens_for(self, node: Node, slot: str) -> SlotTokens:
        """Stored tokens for ``slot``, falling back to generation rules."""
        tokens = node.tokens.get(slot)
        if tokens is not None:
            return tokens
        return self.default_tokens(slot, _context_indent(node))

    def default_tokens(self, slot: str, indent: str = "") -> SlotTokens:
        """Generation rule for a node created without parsed tokens."""
        return SlotTokens()

    def layout(self, node: Node) -> list[LayoutPart]:
        """Text and chains to emit for ``node``, in order."""
        raise NotImplementedError

    def infer_tokens(
        self,
        source: str,
        span: SourceLocation,
        children: Sequence[SourceLocation],
    ) -> SlotTokens:
        """Sample the slot's tokens from the source between child spans."""
        return SlotTokens()


class _ContainerKind(NodeKind):
    """Shared rules for object and array: one slot holding a chain."""

    slot: str
    opening: str
    closing: str

    def default_tokens(self, slot: str, indent: str = "") -> SlotTokens:
        from blocksync.config import get_sync_config

        config = get_sync_config()
        if not indent:
            return SlotTokens(
                prefix=self.opening,
                suffix=self.closing,
                separator=", ",
                trailing_separator=config.trailing_separator,
            )
        inner = indent + config.default_indent
        return SlotTokens(
            prefix=f"{self.opening}\n{inner}",
            suffix=f"\n{indent}{self.closing}",
            separator=f",\n{inner}",
            indent=inner,
            trailing_separator=config.trailing_separator,
        )

    def layout(self, node: Node) -> list[LayoutPart]:
        tokens = self.tokens_for(node, self.slot)
        head = node.slots.get(self.slot)
        if head is None:
            return [empty_prefix(tokens), tokens.suffix]
        return [
            tokens.prefix,
            ChainPart(head, tokens.separator, tokens.trailing_separator),
            tokens.suffix,
        ]

    def infer_tokens(
        self,
        source: str,
        span: SourceLocation,
        children: Sequence[SourceLocation],
    ) -> SlotTokens:
        text = span.slice(source)
        if not children:
            # Split before the closing bracket so a first child lands inside.
            return SlotTokens(
                prefix=text[:-1],
                suffix=text[-1:],
                separator=self.default_tokens(self.slot).separator,
            )

        first, last = children[0], children[-1]
        prefix = source[span.offset : first.offset]
        suffix = source[last.end_offset : span.end_offset]
        if len(children) >= 2:
            separator = source[first.end_offset : children[1].offset]
        elif "\n" in prefix:
            # One child on its own line: continue in the same style.
            separator = "," + prefix[len(self.opening) :]
        else:
            separator = self.default_tokens(self.slot).separator
        return SlotTokens(
            prefix=prefix,
            suffix=suffix,
            separator=separator,
            indent=indent_of(separator),
        )


class ObjectKind(_ContainerKind):
    type = NodeType.OBJECT
    slots = (MEMBERS,)
    slot = MEMBERS
    opening = "{"
    closing = "}"


class ArrayKind(_ContainerKind):
    type = NodeType.ARRAY
    slots = (ITEMS,)
    slot = ITEMS
    opening = "["
    closing = "]"


class PairKind(NodeKind):
    """Object member.

    A scalar value lives in the VALUE field; an object or array value hangs
    from the VALUE slot. The VALUE slot tokens wrap either form, so the text
    between key and value (``":"``, ``" : "``) is its prefix.
    """

    type = NodeType.PAIR
    slots = (VALUE,)
    fields = (KEY, VALUE)

    def default_tokens(self, slot: str, indent: str = "") -> SlotTokens:
        return SlotTokens(prefix=": ")

    def layout(self, node: Node) -> list[LayoutPart]:
        key = node.fields.get(KEY)
        if key is None:
            raise RenderError(f"pair {node.id!r} has no key")
        tokens = self.tokens_for(node, VALUE)
        head = node.slots.get(VALUE)
        if head is not None:
            body: LayoutPart = ChainPart(head, tokens.separator, tokens.trailing_separator)
        elif node.fields.get(VALUE) is not None:
            body = node.fields[VALUE]
        else:
            raise RenderError(f"pair {node.id!r} has no value")
        return [key, tokens.prefix, body, tokens.suffix]

    def infer_tokens(
        self,
        source: str,
        span: SourceLocation,
        children: Sequence[SourceLocation],
    ) -> SlotTokens:
        key, value = children
        return SlotTokens(
            prefix=source[key.end_offset : value.offset],
            suffix=source[value.end_offset : span.end_offset],
        )


class ScalarKind(NodeKind):
    type = NodeType.SCALAR
    fields = (VALUE,)

    def layout(self, node: Node) -> list[LayoutPart]:
        value = node.fields.get(VALUE)
        if value is None:
            raise RenderError(f"scalar {node.id!r} has no value")
        return [value]


KINDS: dict[NodeType, NodeKind] = {
    NodeType.OBJECT: ObjectKind(),
    NodeType.ARRAY: ArrayKind(),
    NodeType.PAIR: PairKind(),
    NodeType.SCALAR: ScalarKind(),
}

_missing = set(NodeType) - set(KINDS)
if _missing:  # pragma: no cover - import-time guard
    raise RuntimeError(f"Node types without rules: {sorted(t.value for t in _missing)}")


def kind_of(node_type: NodeType) -> NodeKind:
    """Look up the rules for a node type."""
    return KINDS[node_type]


def slot_names(node_type: NodeType) -> tuple[str, ...]:
    """Slot names owned by a node type, in layout order."""
    return KINDS[node_type].slots


def _context_indent(node: Node) -> str:
    """Indent of the nearest enclosing slot, for generated tokens."""
    container = node.container
    while container is not None:
        owner, slot = container
        tokens = owner.tokens.get(slot)
        if tokens is not None:
            return tokens.indent
        container = owner.container
    return ""
