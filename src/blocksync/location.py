"""Source spans for parse nodes, model nodes, fields and slot regions.

Provides the SourceLocation dataclass used everywhere a position in the
serialized text is recorded: lexer tokens, parse-tree nodes, and the span
metadata attached to node-model nodes.

Thread Safety:
SourceLocation is frozen (immutable) and safe to share across threads.

"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """A span of source text.

    Line and column numbers are 1-indexed; ``offset`` and ``end_offset`` are
    0-indexed absolute character positions with ``end_offset`` exclusive, so
    ``source[loc.offset:loc.end_offset]`` is the spanned text.

    Attributes:
        lineno: Starting line number (1-indexed)
        col_offset: Starting column offset (1-indexed)
        offset: Absolute start offset in the source buffer
        end_offset: Absolute end offset in the source buffer (exclusive)
        end_lineno: Ending line number (optional)
        end_col_offset: Ending column offset (optional)
        source_file: Source file path (optional)

    Examples:
            >>> loc = SourceLocation(1, 2, offset=1, end_offset=4)
            >>> loc.slice('[1,2]')
            '1,2'
            >>> str(SourceLocation(3, 5, source_file="doc.json"))
            'doc.json:3:5'

    """

    lineno: int
    col_offset: int
    offset: int = 0
    end_offset: int = 0
    end_lineno: int | None = None
    end_col_offset: int | None = None
    source_file: str | None = None

    def __str__(self) -> str:
        """Format location for error messages.

        Returns:
            Formatted string like "file.json:10:5" or "10:5"
        """
        if self.source_file:
            return f"{self.source_file}:{self.lineno}:{self.col_offset}"
        return f"{self.lineno}:{self.col_offset}"

    def slice(self, source: str) -> str:
        """Return the text this span covers in ``source``."""
        return source[self.offset : self.end_offset]

    def contains(self, other: SourceLocation) -> bool:
        """True if ``other`` lies entirely within this span."""
        return self.offset <= other.offset and other.end_offset <= self.end_offset

    def span_to(self, end: SourceLocation) -> SourceLocation:
        """Create a new location spanning from this location to end.

        Args:
            end: Ending location

        Returns:
            New SourceLocation with this start and end's end positions
        """
        return SourceLocation(
            lineno=self.lineno,
            col_offset=self.col_offset,
            offset=self.offset,
            end_offset=end.end_offset or end.offset,
            end_lineno=end.end_lineno or end.lineno,
            end_col_offset=end.end_col_offset or end.col_offset,
            source_file=self.source_file,
        )

    @classmethod
    def unknown(cls) -> SourceLocation:
        """Create an unknown/placeholder location.

        Use for nodes created synthetically, when no parse produced them.
        """
        return cls(lineno=0, col_offset=0)
