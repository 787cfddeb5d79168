"""Single-pass lexer for the reference JSON grammar.

Scans the source once, left to right, and yields Token objects carrying
absolute offsets plus line/column coordinates. Whitespace is skipped but
never lost: the tree builder samples it back out of the source using the
token offsets.

No regex in the hot path. Every branch advances the position, so the scan
always terminates.

Thread Safety:
Lexer instances are single-use. Create one per source string.
All state is instance-local; no shared mutable state.

"""

from __future__ import annotations

from collections.abc import Iterator

from blocksync.errors import ParseError
from blocksync.tokens import Token, TokenType

_PUNCTUATION: dict[str, TokenType] = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
}

_KEYWORDS: dict[str, TokenType] = {
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

_WHITESPACE = frozenset(" \t\r\n")
_DIGITS = frozenset("0123456789")
_ESCAPABLE = frozenset('"\\/bfnrtu')
_HEX = frozenset("0123456789abcdefABCDEF")


class Lexer:
    """Tokenizer for JSON text.

    Usage:
            >>> for token in Lexer('{"a": 1}').tokenize():
            ...     print(token)
        Token(LBRACE, '{', 1:1)
        Token(STRING, '"a"', 1:2)
        Token(COLON, ':', 1:5)
        Token(NUMBER, '1', 1:7)
        Token(RBRACE, '}', 1:8)
        Token(EOF, '', 1:9)

    """

    __slots__ = (
        "_source",
        "_source_len",
        "_pos",
        "_lineno",
        "_col",
        "_source_file",
    )

    def __init__(self, source: str, source_file: str | None = None) -> None:
        """Initialize lexer with source text.

        Args:
            source: JSON source text
            source_file: Optional source file path for error messages
        """
        self._source = source
        self._source_len = len(source)
        self._pos = 0
        self._lineno = 1
        self._col = 1
        self._source_file = source_file

    def tokenize(self) -> Iterator[Token]:
        """Yield tokens until the end of the source, then one EOF token.

        Raises:
            ParseError: On characters that cannot start a token, unterminated
                strings, bad escapes and malformed numbers.
        """
        while True:
            self._skip_whitespace()
            if self._pos >= self._source_len:
                yield self._make(TokenType.EOF, self._pos, self._lineno, self._col)
                return

            char = self._source[self._pos]
            start, lineno, col = self._pos, self._lineno, self._col

            punct = _PUNCTUATION.get(char)
            if punct is not None:
                self._advance(1)
                yield self._make(punct, start, lineno, col)
            elif char == '"':
                self._scan_string()
                yield self._make(TokenType.STRING, start, lineno, col)
            elif char == "-" or char in _DIGITS:
                self._scan_number()
                yield self._make(TokenType.NUMBER, start, lineno, col)
            elif char.isalpha():
                self._scan_keyword()
                yield self._make(_KEYWORDS[self._source[start : self._pos]], start, lineno, col)
            else:
                raise self._error(f"Unexpected character {char!r}")

    # -- scanning ----------------------------------------------------------

    def _advance(self, count: int) -> None:
        # Strings reject raw newlines, so only whitespace runs move the line.
        for char in self._source[self._pos : self._pos + count]:
            if char == "\n":
                self._lineno += 1
                self._col = 1
            else:
                self._col += 1
        self._pos += count

    def _skip_whitespace(self) -> None:
        pos = self._pos
        while pos < self._source_len and self._source[pos] in _WHITESPACE:
            pos += 1
        if pos != self._pos:
            self._advance(pos - self._pos)

    def _scan_string(self) -> None:
        source = self._source
        pos = self._pos + 1
        while pos < self._source_len:
            char = source[pos]
            if char == '"':
                self._advance(pos + 1 - self._pos)
                return
            if char == "\\":
                escape = source[pos + 1 : pos + 2]
                if not escape or escape not in _ESCAPABLE:
                    self._advance(pos - self._pos)
                    raise self._error(f"Invalid escape sequence \\{escape}")
                if escape == "u":
                    digits = source[pos + 2 : pos + 6]
                    if len(digits) != 4 or any(d not in _HEX for d in digits):
                        self._advance(pos - self._pos)
                        raise self._error("Invalid unicode escape")
                    pos += 6
                    continue
                pos += 2
                continue
            if char == "\n" or ord(char) < 0x20:
                self._advance(pos - self._pos)
                raise self._error("Control character in string")
            pos += 1
        raise self._error("Unterminated string")

    def _scan_number(self) -> None:
        source = self._source
        pos = self._pos
        if source[pos] == "-":
            pos += 1
        if pos < self._source_len and source[pos] == "0":
            pos += 1
        elif pos < self._source_len and source[pos] in _DIGITS:
            while pos < self._source_len and source[pos] in _DIGITS:
                pos += 1
        else:
            raise self._error("Malformed number")

        if pos < self._source_len and source[pos] == ".":
            pos += 1
            if pos >= self._source_len or source[pos] not in _DIGITS:
                raise self._error("Malformed number: digits expected after '.'")
            while pos < self._source_len and source[pos] in _DIGITS:
                pos += 1

        if pos < self._source_len and source[pos] in "eE":
            pos += 1
            if pos < self._source_len and source[pos] in "+-":
                pos += 1
            if pos >= self._source_len or source[pos] not in _DIGITS:
                raise self._error("Malformed number: exponent digits expected")
            while pos < self._source_len and source[pos] in _DIGITS:
                pos += 1

        self._advance(pos - self._pos)

    def _scan_keyword(self) -> None:
        pos = self._pos
        while pos < self._source_len and self._source[pos].isalpha():
            pos += 1
        word = self._source[self._pos : pos]
        if word not in _KEYWORDS:
            raise self._error(f"Unknown literal {word!r}")
        self._advance(pos - self._pos)

    # -- helpers -----------------------------------------------------------

    def _make(self, token_type: TokenType, start: int, lineno: int, col: int) -> Token:
        return Token(
            type=token_type,
            value=self._source[start : self._pos],
            _lineno=lineno,
            _col=col,
            _start_offset=start,
            _end_offset=self._pos,
            _end_lineno=self._lineno,
            _end_col=self._col,
            _source_file=self._source_file,
        )

    def _error(self, message: str) -> ParseError:
        return ParseError(
            message,
            lineno=self._lineno,
            col_offset=self._col,
            source_file=self._source_file,
        )
