"""
blocksync: Identity-Preserving Text/Model Synchronization

Keeps a serialized document (JSON-like text) and the node model a visual
block editor manipulates in step. Either side may change first; the other
is updated with minimal disruption, and unchanged nodes keep their identity
across edits.

Quick Start:
    >>> from blocksync import build, render, reconcile
    >>> model = build('{"B":[1,2,3]}')
    >>> render(model)
    '{"B":[1,2,3]}'

    >>> change_set = reconcile('{"B":[1,2,3]}', '{"B":[1,2,3],"C":4}')
    >>> change_set.summary()
    '+1 nodes, -0 nodes, +1 links, -0 links, ~0 fields'

Live Editing:
    >>> from blocksync import Session
    >>> session = Session('[1, 2]')
    >>> session.model.set_field(session.model.root.children("ITEMS")[0], "VALUE", "7")
    >>> session.sync_from_model().status
    'synced'
    >>> session.text
    '[7, 2]'

Installation:
    pip install blocksync            # zero runtime dependencies
"""

from blocksync.applier import (
    AppliedChangeSet,
    apply_change_set,
    apply_entries,
    undo_change_set,
)
from blocksync.builder import build, build_tree
from blocksync.changes import (
    AddLink,
    ChangeEntry,
    ChangeField,
    ChangeSet,
    CreateNode,
    DeleteNode,
    RemoveLink,
)
from blocksync.config import (
    SyncConfig,
    get_sync_config,
    reset_sync_config,
    set_sync_config,
    sync_config_context,
)
from blocksync.errors import (
    BlockSyncError,
    IdentityCollisionError,
    ParseError,
    RenderError,
    SerializationError,
    SpanStaleError,
    SpliceConflictError,
    StructuralEditError,
)
from blocksync.kinds import KINDS, NEXT, NodeKind, NodeType, SlotTokens
from blocksync.location import SourceLocation
from blocksync.nodes import EventKind, ModelEvent, Node, NodeMeta, NodeModel
from blocksync.parser import parse
from blocksync.patcher import Splice, TextPatch, patch_text
from blocksync.protocols import GrammarParser, JsonGrammar
from blocksync.renderers import (
    ModelRenderer,
    SourceRenderer,
    YamlRenderer,
    render,
    render_subtree,
    render_yaml,
)
from blocksync.session import EchoGuard, Session, SyncResult
from blocksync.snapshot import Snapshot, SnapshotRecord, encode_snapshot
from blocksync.stabilizer import stabilize
from blocksync.synthesizer import reconcile, synthesize

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core API
    "build",
    "build_tree",
    "render",
    "render_subtree",
    "render_yaml",
    "reconcile",
    "apply_change_set",
    "parse",
    "Session",
    "SyncResult",
    "EchoGuard",
    # Pipeline stages
    "encode_snapshot",
    "stabilize",
    "synthesize",
    "apply_entries",
    "undo_change_set",
    "patch_text",
    "Snapshot",
    "SnapshotRecord",
    "AppliedChangeSet",
    "Splice",
    "TextPatch",
    # Change sets
    "ChangeSet",
    "ChangeEntry",
    "CreateNode",
    "DeleteNode",
    "AddLink",
    "RemoveLink",
    "ChangeField",
    # Model
    "NodeModel",
    "Node",
    "NodeMeta",
    "NodeType",
    "NodeKind",
    "KINDS",
    "NEXT",
    "SlotTokens",
    "ModelEvent",
    "EventKind",
    "SourceLocation",
    # Protocols and renderers
    "GrammarParser",
    "JsonGrammar",
    "ModelRenderer",
    "SourceRenderer",
    "YamlRenderer",
    # Configuration
    "SyncConfig",
    "get_sync_config",
    "set_sync_config",
    "reset_sync_config",
    "sync_config_context",
    # Errors
    "BlockSyncError",
    "ParseError",
    "SpanStaleError",
    "SpliceConflictError",
    "IdentityCollisionError",
    "StructuralEditError",
    "RenderError",
    "SerializationError",
]
