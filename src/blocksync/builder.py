"""Position-tagged tree builder.

Turns a parse tree plus its source text into a NodeModel. Every model node
remembers the span it came from, the spans of its fields and slot regions,
and the formatting tokens sampled from the source around its children, so
that rendering the model reproduces the text byte for byte:

    >>> from blocksync import build, render
    >>> model = build('{"B":[1,2,3]}')
    >>> render(model) == '{"B":[1,2,3]}'
    True

The builder walks the parse tree with an explicit stack. Each container's
children are created and chained in one step, then queued for expansion.

"""

from __future__ import annotations

from collections.abc import Mapping

from blocksync.errors import ParseError
from blocksync.kinds import (
    ITEMS,
    KEY,
    MEMBERS,
    NEXT,
    VALUE,
    NodeType,
    kind_of,
)
from blocksync.location import SourceLocation
from blocksync.nodes import Node, NodeMeta, NodeModel
from blocksync.protocols import GrammarParser, JsonGrammar
from blocksync.tokens import Token
from blocksync.tree import ARRAY_RULE, OBJECT_RULE, PAIR_RULE, ParseTree, node_location
from blocksync.utils.hashing import source_fingerprint
from blocksync.utils.logger import get_logger

logger = get_logger(__name__)

_CONTAINERS: dict[str, tuple[NodeType, str]] = {
    OBJECT_RULE: (NodeType.OBJECT, MEMBERS),
    ARRAY_RULE: (NodeType.ARRAY, ITEMS),
}


def build(
    text: str,
    parser: GrammarParser | None = None,
    *,
    source_file: str | None = None,
) -> NodeModel:
    """Parse ``text`` and build a node model from it.

    Args:
        text: Serialized document
        parser: Grammar front end (defaults to the reference JSON grammar)
        source_file: Optional path for error messages

    Raises:
        ParseError: If the text does not conform to the grammar.

    """
    parser = parser or JsonGrammar(source_file)
    return build_tree(parser.parse(text), text)


def build_tree(tree: ParseTree | Token, source: str) -> NodeModel:
    """Build a node model from an already parsed tree."""
    root_span = node_location(tree)
    model = NodeModel(
        leading=source[: root_span.offset],
        trailing=source[root_span.end_offset :],
    )
    fingerprint = source_fingerprint(source)
    model.source_hash = fingerprint

    root = _make_node(model, tree, source, fingerprint)
    stack: list[tuple[Node, ParseTree | Token]] = [(root, tree)]
    while stack:
        node, parsed = stack.pop()
        if not isinstance(parsed, ParseTree):
            continue
        for slot, children in _slot_children(parsed):
            previous: Node | None = None
            for child in children:
                child_node = _make_node(model, child, source, fingerprint)
                if previous is None:
                    model.link(node, slot, child_node)
                else:
                    model.link(previous, NEXT, child_node)
                previous = child_node
                stack.append((child_node, child))

    logger.debug("Built %d nodes from %d characters", len(model), len(source))
    return model


def _slot_children(tree: ParseTree) -> list[tuple[str, tuple[ParseTree | Token, ...]]]:
    if tree.rule in _CONTAINERS:
        _, slot = _CONTAINERS[tree.rule]
        return [(slot, tree.children)]
    if tree.rule == PAIR_RULE:
        value = tree.children[1]
        return [(VALUE, (value,))] if isinstance(value, ParseTree) else []
    raise ParseError(f"Unknown rule {tree.rule!r}", lineno=tree.location.lineno)


def _make_node(
    model: NodeModel,
    parsed: ParseTree | Token,
    source: str,
    fingerprint: str,
) -> Node:
    if isinstance(parsed, Token):
        loc = parsed.location
        return model.create_node(
            NodeType.SCALAR,
            {VALUE: parsed.value},
            meta=NodeMeta(span=loc, field_spans={VALUE: loc}, source_hash=fingerprint),
        )

    span = parsed.location
    if parsed.rule in _CONTAINERS:
        node_type, slot = _CONTAINERS[parsed.rule]
        tokens = kind_of(node_type).infer_tokens(
            source, span, [node_location(child) for child in parsed.children]
        )
        return model.create_node(
            node_type,
            tokens={slot: tokens},
            meta=NodeMeta(span=span, slot_spans={slot: span}, source_hash=fingerprint),
        )

    if parsed.rule == PAIR_RULE:
        key, value = parsed.children
        if not isinstance(key, Token):
            raise ParseError("Pair key must be a terminal", lineno=span.lineno)
        key_loc, value_loc = key.location, node_location(value)
        tokens = kind_of(NodeType.PAIR).infer_tokens(source, span, [key_loc, value_loc])
        fields = {KEY: key.value}
        field_spans = {KEY: key_loc}
        if isinstance(value, Token):
            fields[VALUE] = value.value
            field_spans[VALUE] = value_loc
        return model.create_node(
            NodeType.PAIR,
            fields,
            tokens={VALUE: tokens},
            meta=NodeMeta(
                span=span,
                field_spans=field_spans,
                slot_spans={VALUE: _after(key_loc, span)},
                source_hash=fingerprint,
            ),
        )

    raise ParseError(f"Unknown rule {parsed.rule!r}", lineno=span.lineno)


def _after(first: SourceLocation, whole: SourceLocation) -> SourceLocation:
    """Span from the end of ``first`` to the end of ``whole``."""
    return SourceLocation(
        lineno=first.end_lineno or first.lineno,
        col_offset=first.end_col_offset or first.col_offset,
        offset=first.end_offset,
        end_offset=whole.end_offset,
        end_lineno=whole.end_lineno,
        end_col_offset=whole.end_col_offset,
        source_file=whole.source_file,
    )


def adopt_metadata(
    live: NodeModel,
    fresh: NodeModel,
    id_map: Mapping[str, str],
) -> int:
    """Copy spans and tokens from a freshly built model onto the live one.

    ``id_map`` maps fresh ids to live ids for nodes both models share;
    ids missing from it are looked up unchanged (nodes the live model
    adopted from ``fresh`` keep their ids).

    Returns:
        Number of live nodes refreshed.

    """
    refreshed = 0
    for node in fresh:
        target = live.get(id_map.get(node.id, node.id))
        if target is None or target.type is not node.type:
            continue
        target.meta = node.meta
        target.tokens = dict(node.tokens)
        refreshed += 1
    live.leading = fresh.leading
    live.trailing = fresh.trailing
    live.source_hash = fresh.source_hash
    return refreshed
