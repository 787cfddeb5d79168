"""Exception classes for blocksync.

Every failure the synchronization engine can report derives from
BlockSyncError. Three kinds are recovered locally (ParseError by the session,
SpanStaleError and SpliceConflictError by the text patcher); the rest
propagate.
"""

from __future__ import annotations


class BlockSyncError(Exception):
    """Base exception for all blocksync errors.

    Subclass this for specific error categories.
    """

    pass


class ParseError(BlockSyncError):
    """Text does not conform to the grammar.

    Raised by the parser; a reconciliation pass that hits it aborts before
    touching the live model.
    """

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        col_offset: int | None = None,
        source_file: str | None = None,
    ) -> None:
        """Initialize parse error with optional location.

        Args:
            message: Error description
            lineno: Line number where error occurred (1-indexed)
            col_offset: Column offset where error occurred (1-indexed)
            source_file: Path to source file (optional)
        """
        self.message = message
        self.lineno = lineno
        self.col_offset = col_offset
        self.source_file = source_file

        location = ""
        if source_file:
            location = f"{source_file}:"
        if lineno is not None:
            location += f"{lineno}:"
            if col_offset is not None:
                location += f"{col_offset}:"
        if location:
            location = location.rstrip(":") + " "

        super().__init__(f"{location}{message}")


class SpanStaleError(BlockSyncError):
    """Spans were measured against text that has since changed.

    Not fatal: the text patcher answers it with a full regeneration.
    """

    def __init__(self, node_id: str | None, message: str) -> None:
        self.node_id = node_id
        subject = f"node {node_id!r}: " if node_id else ""
        super().__init__(f"{subject}{message}")


class IdentityCollisionError(BlockSyncError):
    """No free pseudo-id was found within the probe bound.

    Fatal for the reconciliation pass: ids are never wrapped around or
    reused silently.
    """

    def __init__(self, pseudo_id: str, probes: int) -> None:
        self.pseudo_id = pseudo_id
        self.probes = probes
        super().__init__(
            f"Could not find a free id for {pseudo_id!r} after {probes} probes"
        )


class StructuralEditError(BlockSyncError):
    """A change-set entry violates a structural precondition.

    Examples are creating a node whose id already exists, deleting a node
    that is still linked, or removing a link that is not present. Change
    sets derived from a genuine diff never trigger this.
    """

    def __init__(self, entry: object, message: str) -> None:
        self.entry = entry
        super().__init__(f"{message}: {entry!r}")


class RenderError(BlockSyncError):
    """A node cannot be rendered with its kind's layout.

    Raised, for instance, for a pair carrying neither a scalar value nor a
    nested value.
    """

    pass


class SerializationError(BlockSyncError, ValueError):
    """A persisted model payload is malformed."""

    pass


class SpliceConflictError(BlockSyncError):
    """A model edit cannot be expressed as independent text splices.

    Raised by the text patcher when a surviving node moved to another
    container or was reordered, when top-level nodes changed, or when
    splices overlap. With full-render fallback enabled (the default) the
    patcher regenerates the whole document instead.
    """

    pass
