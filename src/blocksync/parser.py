"""Stack-driven parser for the reference JSON grammar.

Consumes the token stream from Lexer and produces a ParseTree:

    value  : object | array | STRING | NUMBER | TRUE | FALSE | NULL
    object : "{" [pair ("," pair)*] "}"
    pair   : STRING ":" value
    array  : "[" [value ("," value)*] "]"

``value`` is inlined: an object member's value or an array element is either
a nested rule instance or a bare terminal token. Punctuation is dropped from
the tree; spans keep it recoverable.

Open containers are kept on an explicit stack, so deep nesting never
reaches the interpreter's recursion limit.

Thread Safety:
Parser instances are single-use and not thread-safe. Create one per parse.
The resulting tree is immutable.

"""

from __future__ import annotations

from blocksync.errors import ParseError
from blocksync.lexer import Lexer
from blocksync.tokens import SCALAR_TOKENS, Token, TokenType
from blocksync.tree import ARRAY_RULE, OBJECT_RULE, PAIR_RULE, ParseTree

_NAMES: dict[TokenType, str] = {
    TokenType.EOF: "end of input",
    TokenType.LBRACE: "'{'",
    TokenType.RBRACE: "'}'",
    TokenType.LBRACKET: "'['",
    TokenType.RBRACKET: "']'",
    TokenType.COLON: "':'",
    TokenType.COMMA: "','",
    TokenType.STRING: "string",
}


class Parser:
    """JSON parser producing position-tagged parse trees.

    Usage:
            >>> tree = Parser('{"B":[1,2,3]}').parse()
            >>> tree.rule, [child.rule for child in tree.children]
            ('object', ['pair'])

    """

    __slots__ = (
        "_source",
        "_source_file",
        "_tokens",
        "_pos",
    )

    def __init__(self, source: str, source_file: str | None = None) -> None:
        """Initialize parser with source text.

        Args:
            source: JSON source text
            source_file: Optional source file path for error messages

        """
        self._source = source
        self._source_file = source_file
        self._tokens: list[Token] = []
        self._pos = 0

    def parse(self) -> ParseTree | Token:
        """Parse the whole source as one value.

        Returns:
            The root rule instance, or a bare token for a scalar document.

        Raises:
            ParseError: If the text is not a single well-formed value.

        """
        self._tokens = list(Lexer(self._source, self._source_file).tokenize())
        self._pos = 0
        root = self._parse_value()
        self._expect(TokenType.EOF)
        return root

    # -- token navigation --------------------------------------------------

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        token = self._current
        if token.type is not token_type:
            raise self._unexpected(token, _NAMES.get(token_type, token_type.name.lower()))
        return self._advance()

    def _unexpected(self, token: Token, wanted: str) -> ParseError:
        found = _NAMES.get(token.type) or repr(token.value)
        return ParseError(
            f"Expected {wanted}, found {found}",
            lineno=token.lineno,
            col_offset=token.col,
            source_file=self._source_file,
        )

    # -- grammar -----------------------------------------------------------

    def _parse_value(self) -> ParseTree | Token:
        """Parse one value, keeping open containers on an explicit stack."""
        stack: list[_OpenContainer] = []
        while True:
            token = self._current
            if token.type is TokenType.LBRACE or token.type is TokenType.LBRACKET:
                container = _OpenContainer(self._advance())
                stack.append(container)
                if self._current.type is not container.closer:
                    if container.rule == OBJECT_RULE:
                        container.key = self._parse_key()
                    continue
                value: ParseTree | Token = self._close(stack.pop())
            elif token.type in SCALAR_TOKENS:
                value = self._advance()
            else:
                raise self._unexpected(token, "a value")

            # Hand the finished value to its container, closing every
            # container that ends right after it.
            while stack:
                container = stack[-1]
                container.add(value)
                if self._current.type is TokenType.COMMA:
                    self._advance()
                    if container.rule == OBJECT_RULE:
                        container.key = self._parse_key()
                    break
                value = self._close(stack.pop())
            else:
                return value

    def _parse_key(self) -> Token:
        key = self._expect(TokenType.STRING)
        self._expect(TokenType.COLON)
        return key

    def _close(self, container: _OpenContainer) -> ParseTree:
        closing = self._expect(container.closer)
        return ParseTree(
            container.rule,
            tuple(container.children),
            container.opening.location.span_to(closing.location),
        )


class _OpenContainer:
    """An object or array whose closing bracket has not been read yet."""

    __slots__ = ("opening", "rule", "closer", "children", "key")

    def __init__(self, opening: Token) -> None:
        self.opening = opening
        if opening.type is TokenType.LBRACE:
            self.rule, self.closer = OBJECT_RULE, TokenType.RBRACE
        else:
            self.rule, self.closer = ARRAY_RULE, TokenType.RBRACKET
        self.children: list[ParseTree | Token] = []
        self.key: Token | None = None

    def add(self, value: ParseTree | Token) -> None:
        if self.key is None:
            self.children.append(value)
            return
        pair = ParseTree(PAIR_RULE, (self.key, value), self.key.location.span_to(value.location))
        self.children.append(pair)
        self.key = None


def parse(source: str, *, source_file: str | None = None) -> ParseTree | Token:
    """Parse JSON text into a position-tagged parse tree.

    Args:
        source: JSON source text
        source_file: Optional source file path for error messages

    Raises:
        ParseError: If the text does not conform to the grammar.

    """
    return Parser(source, source_file=source_file).parse()
