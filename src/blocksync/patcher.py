"""Text patcher: push a model-side edit into the text with minimal splices.

Inputs are the current text, the model built from it (the text side, whose
nodes carry spans measured against that text), the edited live model, and
the change set reconciling the two. Splices are derived from the text-side
spans:

- a field change replaces the field's span; adding or removing a field
  re-renders the whole node
- per affected slot, deleted and created siblings are grouped into the gaps
  between surviving siblings, and each gap is replaced once. Deleting the
  middle item of ``[1,2,3]`` removes ``",2"`` and nothing else. The
  container's suffix is never touched; its prefix only loses the indent
  line of a multi-line chain that ends up empty

When no minimal patch can be computed (spans missing or stale, a surviving
node moved or reordered, top-level nodes changed, splices overlapping) the
whole document is regenerated instead, and the result says so.

"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from blocksync.changes import ChangeSet
from blocksync.config import get_sync_config
from blocksync.errors import SpanStaleError, SpliceConflictError
from blocksync.kinds import NEXT, SlotTokens, empty_prefix, kind_of
from blocksync.location import SourceLocation
from blocksync.nodes import Node, NodeMeta, NodeModel
from blocksync.renderers.source import render, render_subtree
from blocksync.utils.hashing import source_fingerprint
from blocksync.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Splice:
    """Replace ``text[start:end]`` with ``replacement``."""

    start: int
    end: int
    replacement: str


@dataclass(frozen=True, slots=True)
class TextPatch:
    """Outcome of patching a text buffer.

    Attributes:
        text: The patched text
        splices: Splices applied, ordered by position in the old text
        full_render: True when the whole document was regenerated
        reason: Why the minimal patch was abandoned, if it was

    """

    text: str
    splices: tuple[Splice, ...]
    full_render: bool = False
    reason: str | None = None


def patch_text(
    text: str,
    text_model: NodeModel,
    model: NodeModel,
    change_set: ChangeSet,
) -> TextPatch:
    """Apply a model-driven change set to ``text``.

    Args:
        text: Current serialized document
        text_model: Model built from ``text``, with spans
        model: The edited live model
        change_set: ``reconcile(text_model, model)``

    Raises:
        SpanStaleError: Spans do not match ``text`` and full-render fallback
            is disabled.
        SpliceConflictError: No minimal patch exists and full-render
            fallback is disabled.
        RenderError: A node of the live model cannot be rendered.

    """
    try:
        splices = _SplicePlanner(text, text_model, model, change_set).plan()
    except (SpanStaleError, SpliceConflictError) as exc:
        if not get_sync_config().allow_full_render_fallback:
            raise
        logger.info("Regenerating the whole document: %s", exc)
        new_text = render(model)
        return TextPatch(
            text=new_text,
            splices=(Splice(0, len(text), new_text),),
            full_render=True,
            reason=str(exc),
        )

    logger.debug("Patched text with %d splices", len(splices))
    return TextPatch(text=apply_splices(text, splices), splices=tuple(splices))


def apply_splices(text: str, splices: Iterable[Splice]) -> str:
    """Apply non-overlapping splices sorted by position."""
    pieces: list[str] = []
    cursor = 0
    for splice in splices:
        pieces.append(text[cursor : splice.start])
        pieces.append(splice.replacement)
        cursor = splice.end
    pieces.append(text[cursor:])
    return "".join(pieces)


class _SplicePlanner:
    """Derives splices for one change set. Single use."""

    __slots__ = ("_text", "_old", "_new", "_changes", "_fingerprint", "_to_live", "_shared")

    def __init__(
        self,
        text: str,
        text_model: NodeModel,
        model: NodeModel,
        change_set: ChangeSet,
    ) -> None:
        self._text = text
        self._old = text_model
        self._new = model
        self._changes = change_set
        self._fingerprint = source_fingerprint(text)
        self._to_live = {old: new for new, old in change_set.id_map.items()}
        self._shared = set(self._to_live)

    def plan(self) -> list[Splice]:
        if self._old.source_hash != self._fingerprint:
            raise SpanStaleError(None, "text model was built from a different text")
        self._check_top_level()

        splices: list[Splice] = []
        rerender: dict[str, Node] = {}

        for change in self._changes.field_changes:
            node = self._old[change.node_id]
            field_span = self._meta(node).field_spans.get(change.field)
            if change.old_value is None or change.new_value is None or field_span is None:
                rerender[node.id] = node
                continue
            splices.append(Splice(field_span.offset, field_span.end_offset, change.new_value))

        for owner, slot in self._affected_slots():
            splices.extend(self._slot_splices(owner, slot))

        covering: list[SourceLocation] = []
        for node in rerender.values():
            span = self._span(node)
            covering.append(span)
            live = self._new[self._to_live[node.id]]
            splices.append(Splice(span.offset, span.end_offset, render_subtree(live)))

        splices.extend(self._document_edges())
        return _merge(splices, covering)

    # -- spans ---------------------------------------------------------------

    def _meta(self, node: Node) -> NodeMeta:
        meta = node.meta
        if meta is None:
            raise SpanStaleError(node.id, "node has no span")
        if meta.source_hash != self._fingerprint:
            raise SpanStaleError(node.id, "span was measured against an older text")
        return meta

    def _span(self, node: Node) -> SourceLocation:
        return self._meta(node).span

    # -- structure -----------------------------------------------------------

    def _check_top_level(self) -> None:
        for deletion in self._changes.deletions:
            if self._old[deletion.node_id].container is None:
                raise SpliceConflictError(f"top-level node {deletion.node_id!r} was deleted")
        for creation in self._changes.creations:
            if self._new[creation.node_id].container is None:
                raise SpliceConflictError(f"top-level node {creation.node_id!r} was created")

    def _affected_slots(self) -> list[tuple[Node, str]]:
        """Text-side ``(owner, slot)`` pairs whose chains changed."""
        affected: dict[tuple[str, str], tuple[Node, str]] = {}

        for removed in self._changes.removed_links:
            parent = self._old[removed.parent_id]
            container = parent.container if removed.slot == NEXT else (parent, removed.slot)
            if container is None:
                raise SpliceConflictError("a top-level sibling chain changed")
            owner, slot = container
            if owner.id in self._shared:
                affected[(owner.id, slot)] = (owner, slot)

        for added in self._changes.added_links:
            parent = self._new[self._to_live.get(added.parent_id, added.parent_id)]
            container = parent.container if added.slot == NEXT else (parent, added.slot)
            if container is None:
                raise SpliceConflictError("a top-level sibling chain changed")
            owner_live, slot = container
            owner_id = self._changes.id_map.get(owner_live.id)
            if owner_id is not None:
                affected[(owner_id, slot)] = (self._old[owner_id], slot)

        return list(affected.values())

    def _slot_splices(self, owner: Node, slot: str) -> list[Splice]:
        live_owner = self._new[self._to_live[owner.id]]
        old_chain = owner.children(slot)
        new_chain = live_owner.children(slot)
        id_map = self._changes.id_map

        anchors = [node for node in old_chain if node.id in self._shared]
        if [node.id for node in anchors] != [id_map[n.id] for n in new_chain if n.id in id_map]:
            raise SpliceConflictError(f"siblings of {owner.id!r}.{slot} moved or were reordered")

        deleted_groups = _gaps(old_chain, lambda n: n.id in self._shared)
        created_groups = _gaps(new_chain, lambda n: n.id in id_map)
        tokens = kind_of(owner.type).tokens_for(owner, slot)

        splices: list[Splice] = []
        for index, (deleted, created) in enumerate(zip(deleted_groups, created_groups, strict=True)):
            if not deleted and not created:
                continue
            before = anchors[index - 1] if index > 0 else None
            after = anchors[index] if index < len(anchors) else None
            rendered = tokens.separator.join(render_subtree(node) for node in created)
            splices.append(
                self._gap_splice(owner, slot, tokens, before, after, deleted, created, rendered)
            )
        return splices

    def _gap_splice(
        self,
        owner: Node,
        slot: str,
        tokens: SlotTokens,
        before: Node | None,
        after: Node | None,
        deleted: list[Node],
        created: list[Node],
        rendered: str,
    ) -> Splice:
        if before is not None:
            start = self._span(before).end_offset
            end = self._span(deleted[-1]).end_offset if deleted else start
            return Splice(start, end, tokens.separator + rendered if created else "")

        if after is not None:
            end = self._span(after).offset
            start = self._span(deleted[0]).offset if deleted else end
            return Splice(start, end, rendered + tokens.separator if created else "")

        region = self._meta(owner).slot_spans.get(slot)
        if region is None:
            raise SpanStaleError(owner.id, f"slot {slot!r} has no span")
        end = region.end_offset - len(tokens.suffix)
        if not created:
            return Splice(region.offset + len(empty_prefix(tokens)), end, "")
        start = region.offset + len(tokens.prefix)
        if tokens.trailing_separator:
            rendered += tokens.separator
        return Splice(start, end, rendered)

    def _document_edges(self) -> list[Splice]:
        splices: list[Splice] = []
        old, new = self._old, self._new
        if new.leading != old.leading:
            splices.append(Splice(0, len(old.leading), new.leading))
        if new.trailing != old.trailing:
            end = len(self._text)
            splices.append(Splice(end - len(old.trailing), end, new.trailing))
        return splices


def _gaps(chain: list[Node], is_anchor: Callable[[Node], bool]) -> list[list[Node]]:
    """Split ``chain`` into the runs before, between and after anchors."""
    groups: list[list[Node]] = [[]]
    for node in chain:
        if is_anchor(node):
            groups.append([])
        else:
            groups[-1].append(node)
    return groups


def _merge(splices: list[Splice], covering: list[SourceLocation]) -> list[Splice]:
    """Drop splices inside re-rendered nodes, sort, and reject overlaps."""

    def covered(splice: Splice) -> bool:
        if splice.start == splice.end:
            return any(span.offset < splice.start < span.end_offset for span in covering)
        return any(
            span.offset <= splice.start
            and splice.end <= span.end_offset
            and (span.offset, span.end_offset) != (splice.start, splice.end)
            for span in covering
        )

    kept = sorted(
        {(s.start, s.end, s.replacement): s for s in splices if not covered(s)}.values(),
        key=lambda s: (s.start, s.end),
    )
    for previous, current in zip(kept, kept[1:]):
        if current.start < previous.end or (
            current.start == previous.start == previous.end == current.end
        ):
            raise SpliceConflictError(
                f"splices overlap at {previous.start}-{previous.end} and "
                f"{current.start}-{current.end}"
            )
    return kept
