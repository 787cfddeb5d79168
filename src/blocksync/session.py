"""Synchronization session: one live model, one text buffer, kept in step.

A Session owns the only mutable state of a synchronization: the live
NodeModel the editor works on, the text buffer, and the model built from
that text (whose spans the text patcher needs). Two passes move changes
across:

- ``sync_from_text(new_text)``: parse, build, reconcile against the live
  model, replay the change set onto it, then refresh spans and tokens
- ``sync_from_model()``: reconcile the text-side model against the live
  model, patch the text with minimal splices, reparse, refresh spans

Replaying a change set raises model events. The EchoGuard counts how many
of the upcoming events are the session's own, so they are not mistaken for
editor edits.

Usage:
    >>> session = Session('{"B":[1,2,3]}')
    >>> session.sync_from_text('{"B":[1,2,3],"C":4}').status
    'synced'
    >>> array = session.model.root.children("MEMBERS")[0].slots["VALUE"]
    >>> session.model.remove(array.children("ITEMS")[1])
    >>> session.sync_from_model().status
    'synced'
    >>> session.text
    '{"B":[1,3],"C":4}'

Thread Safety:
Sessions are not thread-safe. Drive each session from one thread.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Literal

from blocksync.applier import AppliedChangeSet, apply_entries, undo_change_set
from blocksync.builder import adopt_metadata, build
from blocksync.changes import ChangeSet
from blocksync.config import SyncConfig, get_sync_config, sync_config_context
from blocksync.errors import BlockSyncError, ParseError, RenderError
from blocksync.nodes import ModelEvent, NodeModel
from blocksync.patcher import TextPatch, patch_text
from blocksync.protocols import GrammarParser, JsonGrammar
from blocksync.synthesizer import reconcile
from blocksync.utils.logger import get_logger

logger = get_logger(__name__)

SyncStatus = Literal["synced", "unchanged", "unsynchronized"]


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of one reconciliation pass.

    Attributes:
        status: ``"synced"`` when changes were carried across,
            ``"unchanged"`` when there was nothing to do, and
            ``"unsynchronized"`` when the pass was aborted
        change_set: What was reconciled, if the pass got that far
        error: Why the pass was aborted
        patch: The text patch of a model-driven pass

    """

    status: SyncStatus
    change_set: ChangeSet | None = None
    error: BlockSyncError | None = None
    patch: TextPatch | None = None

    @property
    def ok(self) -> bool:
        return self.status != "unsynchronized"


class EchoGuard:
    """Counts model events that belong to the session's own replays.

    ``replaying(n)`` snapshots the counter and adds ``n``; every replayed
    event consumes one; leaving the block restores the snapshot, so an
    aborted replay cannot leave stale credit behind. The counter never
    goes negative.
    """

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        self._pending = 0

    @property
    def pending(self) -> int:
        return self._pending

    @contextmanager
    def replaying(self, count: int) -> Iterator[None]:
        snapshot = self._pending
        self._pending = snapshot + count
        try:
            yield
        finally:
            self._pending = snapshot

    def consume(self) -> bool:
        """Take one event; True if it was expected as an echo."""
        if self._pending > 0:
            self._pending -= 1
            return True
        return False


class Session:
    """Keeps a live node model and a text buffer synchronized.

    Args:
        text: Initial document text; must parse.
        parser: Grammar front end (defaults to the reference JSON grammar).
        config: Configuration for every pass (defaults to the active one).
        auto_sync: Run ``sync_from_model`` after every editor edit.

    Raises:
        ParseError: If the initial text does not parse.

    """

    def __init__(
        self,
        text: str,
        parser: GrammarParser | None = None,
        *,
        config: SyncConfig | None = None,
        auto_sync: bool = False,
    ) -> None:
        self._config = config or get_sync_config()
        self._parser = parser or JsonGrammar(self._config.source_file)
        self.auto_sync = auto_sync
        self.guard = EchoGuard()
        self._history: list[AppliedChangeSet] = []
        self._busy = False
        self._dirty = False
        self._synchronized = True

        with sync_config_context(self._config):
            self.text = text
            self._text_model = build(text, self._parser)
            self.model = build(text, self._parser)
        self._unsubscribe = self.model.subscribe(self._on_event)

    # -- state ---------------------------------------------------------------

    @property
    def synchronized(self) -> bool:
        """False after a pass aborted, until one succeeds."""
        return self._synchronized

    @property
    def dirty(self) -> bool:
        """True when the editor changed the model since the last pass."""
        return self._dirty

    def close(self) -> None:
        """Stop listening to the live model."""
        self._unsubscribe()

    # -- passes --------------------------------------------------------------

    def sync_from_text(self, new_text: str) -> SyncResult:
        """Carry a text edit over to the live model."""
        if new_text == self.text and self._synchronized:
            return SyncResult("unchanged")

        with self._pass():
            try:
                fresh = build(new_text, self._parser)
            except ParseError as exc:
                # The buffer follows the text editor even while it does not parse.
                self.text = new_text
                return self._abort(exc)

            try:
                change_set = reconcile(self.model, fresh)
                self._replay(change_set)
            except BlockSyncError:
                self._synchronized = False
                raise
            adopt_metadata(self.model, fresh, change_set.id_map)
            self.text = new_text
            self._text_model = fresh
            self._synchronized = True
            logger.debug("Text pass: %s", change_set.summary())
            return SyncResult("synced" if change_set else "unchanged", change_set)

    def sync_from_model(self) -> SyncResult:
        """Carry editor edits over to the text buffer."""
        with self._pass():
            change_set = reconcile(self._text_model, self.model)
            edges_changed = (
                self.model.leading != self._text_model.leading
                or self.model.trailing != self._text_model.trailing
            )
            if not change_set and not edges_changed:
                self._dirty = False
                return SyncResult("unchanged", change_set)

            try:
                patch = patch_text(self.text, self._text_model, self.model, change_set)
                fresh = build(patch.text, self._parser)
            except (ParseError, RenderError) as exc:
                return self._abort(exc, change_set)

            # Rebinding spans: the fresh parse must match the live model.
            echo = reconcile(self.model, fresh)
            if echo:
                logger.warning("Regenerated text differs from the model: %s", echo.summary())
                self._replay(echo)
            adopt_metadata(self.model, fresh, echo.id_map)

            self.text = patch.text
            self._text_model = fresh
            self._dirty = False
            self._synchronized = True
            return SyncResult("synced", change_set, patch=patch)

    def undo(self) -> SyncResult:
        """Revert the last change set a text pass applied, and re-render."""
        if not self._history:
            return SyncResult("unchanged")
        applied = self._history.pop()
        with self._pass():
            with self.guard.replaying(len(applied.inverses)):
                undo_change_set(self.model, applied)
        return self.sync_from_model()

    # -- internals -----------------------------------------------------------

    @contextmanager
    def _pass(self) -> Iterator[None]:
        if self._busy:
            raise BlockSyncError("A reconciliation pass is already running")
        self._busy = True
        try:
            with sync_config_context(self._config):
                yield
        finally:
            self._busy = False

    def _replay(self, change_set: ChangeSet) -> None:
        entries = change_set.entries()
        if not entries:
            return
        with self.guard.replaying(len(entries)):
            applied = apply_entries(self.model, entries)
        self._history.append(applied)

    def _abort(self, error: BlockSyncError, change_set: ChangeSet | None = None) -> SyncResult:
        self._synchronized = False
        logger.warning("Document is unsynchronized: %s", error)
        return SyncResult("unsynchronized", change_set, error=error)

    def _on_event(self, event: ModelEvent) -> None:
        if self.guard.consume():
            return
        self._dirty = True
        if self.auto_sync and not self._busy:
            self.sync_from_model()
