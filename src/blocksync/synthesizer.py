"""Change-set synthesizer.

Computes the minimal structural edit script between two reconciled
snapshots: set differences on ids give creations and deletions, set
differences on link triples give link additions and removals, and a
field-by-field comparison of shared nodes gives field changes.

``reconcile`` runs the whole pass (build if needed, encode, stabilize,
synthesize) for two texts or two models.
"""

from __future__ import annotations

from blocksync.builder import build
from blocksync.changes import (
    AddLink,
    ChangeField,
    ChangeSet,
    CreateNode,
    DeleteNode,
    RemoveLink,
)
from blocksync.kinds import NodeType
from blocksync.nodes import NodeModel
from blocksync.protocols import GrammarParser
from blocksync.snapshot import Snapshot, encode_snapshot
from blocksync.stabilizer import stabilize
from blocksync.utils.logger import get_logger

logger = get_logger(__name__)


def synthesize(
    old: Snapshot,
    new: Snapshot,
    *,
    old_model: NodeModel | None = None,
    new_model: NodeModel | None = None,
) -> ChangeSet:
    """Diff a stabilized old snapshot against a new one.

    Args:
        old: Old side, already relabeled by ``stabilize``
        new: New side
        old_model: Model ``old`` was encoded from; deletions then carry what
            is needed to undo them
        new_model: Model ``new`` was encoded from; creations then carry its
            spans and tokens

    """
    old_ids = [record.id for record in old.records]
    new_ids = [record.id for record in new.records]
    old_set, new_set = set(old_ids), set(new_ids)

    def live(pseudo_id: str) -> str:
        if pseudo_id in old.ids:
            return old.ids[pseudo_id]
        return new.ids[pseudo_id]

    creations: list[CreateNode] = []
    for pseudo_id in new_ids:
        if pseudo_id in old_set:
            continue
        record = new.record(pseudo_id)
        node = new_model.get(new.ids[pseudo_id]) if new_model is not None else None
        creations.append(
            CreateNode(
                node_id=new.ids[pseudo_id],
                node_type=NodeType(record.type),
                fields=dict(record.fields),
                meta=node.meta if node is not None else None,
                tokens=dict(node.tokens) if node is not None else {},
            )
        )

    deletions: list[DeleteNode] = []
    for pseudo_id in old_ids:
        if pseudo_id in new_set:
            continue
        record = old.record(pseudo_id)
        node = old_model.get(old.ids[pseudo_id]) if old_model is not None else None
        deletions.append(
            DeleteNode(
                node_id=old.ids[pseudo_id],
                node_type=NodeType(record.type),
                fields=dict(record.fields),
                meta=node.meta if node is not None else None,
                tokens=dict(node.tokens) if node is not None else {},
            )
        )

    old_links = old.links()
    new_links = new.links()
    old_link_set, new_link_set = set(old_links), set(new_links)
    removed = [
        RemoveLink(live(parent), slot, live(child))
        for parent, slot, child in old_links
        if (parent, slot, child) not in new_link_set
    ]
    added = [
        AddLink(live(parent), slot, live(child))
        for parent, slot, child in new_links
        if (parent, slot, child) not in old_link_set
    ]

    field_changes: list[ChangeField] = []
    id_map: dict[str, str] = {}
    for pseudo_id in new_ids:
        if pseudo_id not in old_set:
            continue
        id_map[new.ids[pseudo_id]] = old.ids[pseudo_id]
        before = old.record(pseudo_id).fields
        after = new.record(pseudo_id).fields
        for name in sorted(before.keys() | after.keys()):
            if before.get(name) != after.get(name):
                field_changes.append(
                    ChangeField(old.ids[pseudo_id], name, before.get(name), after.get(name))
                )

    change_set = ChangeSet(
        removed_links=tuple(removed),
        deletions=tuple(deletions),
        creations=tuple(creations),
        added_links=tuple(added),
        field_changes=tuple(field_changes),
        id_map=id_map,
    )
    logger.debug("Synthesized change set: %s", change_set.summary())
    return change_set


def reconcile(
    old: str | NodeModel,
    new: str | NodeModel,
    *,
    parser: GrammarParser | None = None,
) -> ChangeSet:
    """Compute the change set turning ``old`` into ``new``.

    Either side may be text (built on the fly) or a node model.

    Example:
        >>> change_set = reconcile('{"B":[1,2,3]}', '{"B":[1,2,3],"C":4}')
        >>> len(change_set.creations), len(change_set.added_links)
        (1, 1)

    Raises:
        ParseError: If a text side does not parse.
        IdentityCollisionError: If renumbering exhausts the probe bound.

    """
    old_model = build(old, parser) if isinstance(old, str) else old
    new_model = build(new, parser) if isinstance(new, str) else new
    new_snapshot = encode_snapshot(new_model)
    old_snapshot = stabilize(encode_snapshot(old_model), new_snapshot)
    return synthesize(
        old_snapshot,
        new_snapshot,
        old_model=old_model,
        new_model=new_model,
    )
