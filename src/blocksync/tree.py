"""Parse trees handed from a grammar parser to the tree builder.

A parse tree is the black-box boundary between the grammar and the
synchronization engine: rule instances with ordered children, terminals as
lexer tokens, and a span on every rule instance. Anonymous punctuation is
dropped, exactly as a grammar-driven parser with position propagation would
do, so the builder recovers it by slicing the source between child spans.

Thread Safety:
ParseTree is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from blocksync.location import SourceLocation
from blocksync.tokens import Token

# Rule names produced by the reference parser
OBJECT_RULE = "object"
ARRAY_RULE = "array"
PAIR_RULE = "pair"


@dataclass(frozen=True, slots=True)
class ParseTree:
    """One grammar rule instance.

    Attributes:
        rule: Rule name (``object``, ``array``, ``pair``)
        children: Child rule instances and terminal tokens, in source order
        location: Span from the first to the last character of the instance

    """

    rule: str
    children: tuple[ParseTree | Token, ...]
    location: SourceLocation

    def iter_subtrees(self) -> Iterator[ParseTree]:
        """Iterate over this tree and all nested rule instances, pre-order."""
        stack: list[ParseTree] = [self]
        while stack:
            tree = stack.pop()
            yield tree
            stack.extend(
                child for child in reversed(tree.children) if isinstance(child, ParseTree)
            )

    def pretty(self, source: str) -> str:
        """Indented dump of rules and spans, for debugging."""
        lines: list[str] = []
        stack: list[tuple[ParseTree | Token, int]] = [(self, 0)]
        while stack:
            item, depth = stack.pop()
            pad = "  " * depth
            if isinstance(item, ParseTree):
                loc = item.location
                text = loc.slice(source).replace("\n", " ")
                lines.append(f"{pad}{item.rule}:[{loc.offset}-{loc.end_offset}]:{text}")
                stack.extend((child, depth + 1) for child in reversed(item.children))
            else:
                lines.append(f"{pad}{item.type.name}:{item.value}")
        return "\n".join(lines)


def node_location(node: ParseTree | Token) -> SourceLocation:
    """Span of a parse node, whether rule instance or terminal."""
    return node.location
