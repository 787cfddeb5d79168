"""Protocols for the collaborators blocksync consumes.

The grammar parser is a black box: anything with a ``parse(source)`` method
returning a ParseTree (or a bare Token for a scalar document) and raising
ParseError on bad input can drive a Session. The reference implementation is
``blocksync.parser.Parser`` via the ``JsonGrammar`` adapter below.

Example:
    from blocksync.protocols import GrammarParser

    def load(parser: GrammarParser, text: str) -> NodeModel:
        return build_tree(parser.parse(text), text)

"""

from typing import Protocol, runtime_checkable

from blocksync.tokens import Token
from blocksync.tree import ParseTree


@runtime_checkable
class GrammarParser(Protocol):
    """Protocol for grammar front ends.

    Rule instances must use the rule names the tree builder knows
    (``object``, ``array``, ``pair``) and carry spans with absolute offsets.

    """

    def parse(self, source: str) -> ParseTree | Token:
        """Parse source text.

        Raises:
            ParseError: If the text does not conform to the grammar.

        """
        ...


class JsonGrammar:
    """GrammarParser backed by the reference JSON parser."""

    __slots__ = ("source_file",)

    def __init__(self, source_file: str | None = None) -> None:
        self.source_file = source_file

    def parse(self, source: str) -> ParseTree | Token:
        from blocksync.parser import parse

        return parse(source, source_file=self.source_file)
