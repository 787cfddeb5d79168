"""Canonical snapshot encoder.

A snapshot is a deterministic JSON rendition of a node model that two
reconciliation sides can diff:

- top-level nodes ordered by descendant count, ascending (stable on ties),
  each followed by its descendants in pre-order
- one record per node: ``id``, ``type``, ``fields``, ``slots`` (slot name to
  child id or null) and ``next``
- spans, tokens and cached text omitted
- ``json.dumps(..., indent=N, sort_keys=True)``

Transient ids are replaced everywhere by pseudo-ids of the form
``"<line>|<type>"``, where line is the 1-based line of the id's first
occurrence in the snapshot text. A pseudo-id is meaningful only inside one
reconciliation pass; the Snapshot keeps the map back to transient ids.

Example:
    >>> from blocksync import build
    >>> snap = encode_snapshot(build('[1]'))
    >>> [record.id for record in snap.records]
    ['4|array', '7|scalar']

"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from blocksync.config import get_sync_config
from blocksync.nodes import Node, NodeModel, descendant_count, iter_subtree
from blocksync.utils.hashing import hash_str

# Replaces ids when lines are compared for position only
ID_MASK = "#"


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    """One node as it appears in a snapshot."""

    id: str
    type: str
    fields: Mapping[str, str]
    slots: Mapping[str, str | None]
    next: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": dict(self.fields),
            "id": self.id,
            "next": self.next,
            "slots": dict(self.slots),
            "type": self.type,
        }

    @property
    def content_key(self) -> tuple[str, tuple[tuple[str, str], ...]]:
        """Type and fields: what identifies the node regardless of position."""
        return (self.type, tuple(sorted(self.fields.items())))

    def links(self) -> Iterable[tuple[str, str, str]]:
        """Outgoing ``(parent, slot, child)`` triples, ``next`` included."""
        for slot, child in sorted(self.slots.items()):
            if child is not None:
                yield (self.id, slot, child)
        if self.next is not None:
            yield (self.id, "next", self.next)

    def relabel(self, mapping: Mapping[str, str]) -> SnapshotRecord:
        def swap(value: str | None) -> str | None:
            return None if value is None else mapping.get(value, value)

        return SnapshotRecord(
            id=mapping.get(self.id, self.id),
            type=self.type,
            fields=self.fields,
            slots={slot: swap(child) for slot, child in self.slots.items()},
            next=swap(self.next),
        )


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Encoded snapshot of one model.

    Attributes:
        records: Node records in canonical order, carrying pseudo-ids
        ids: Pseudo-id to transient id
        text: Canonical JSON text
        digest: sha256 of ``text``

    """

    records: tuple[SnapshotRecord, ...]
    ids: Mapping[str, str]
    text: str
    digest: str
    _by_id: dict[str, SnapshotRecord] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self._by_id:
            self._by_id.update((record.id, record) for record in self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, pseudo_id: object) -> bool:
        return pseudo_id in self._by_id

    def record(self, pseudo_id: str) -> SnapshotRecord:
        return self._by_id[pseudo_id]

    def transient_id(self, pseudo_id: str) -> str:
        return self.ids[pseudo_id]

    def links(self) -> list[tuple[str, str, str]]:
        """Every link triple, in record order."""
        return [triple for record in self.records for triple in record.links()]

    def masked_lines(self) -> list[str]:
        """Snapshot lines with every id masked, for positional diffing."""
        masked = [
            SnapshotRecord(
                id=ID_MASK,
                type=record.type,
                fields=record.fields,
                slots={slot: None if c is None else ID_MASK for slot, c in record.slots.items()},
                next=None if record.next is None else ID_MASK,
            )
            for record in self.records
        ]
        return _dump(masked).splitlines()

    def relabel(self, mapping: Mapping[str, str]) -> Snapshot:
        """Rename pseudo-ids; ids absent from ``mapping`` are kept."""
        records = tuple(record.relabel(mapping) for record in self.records)
        ids = {mapping.get(pseudo, pseudo): transient for pseudo, transient in self.ids.items()}
        return _finish(records, ids)


def encode_snapshot(model: NodeModel) -> Snapshot:
    """Encode ``model`` as a canonical snapshot with pseudo-ids."""
    ordered = _canonical_order(model)
    raw = [_record(node) for node in ordered]

    first_line = _first_occurrence_lines(raw)
    pseudo = {record.id: f"{first_line[record.id]}|{record.type}" for record in raw}
    records = tuple(record.relabel(pseudo) for record in raw)
    ids = {pseudo_id: transient for transient, pseudo_id in pseudo.items()}
    return _finish(records, ids)


def _finish(records: tuple[SnapshotRecord, ...], ids: Mapping[str, str]) -> Snapshot:
    text = _dump(records)
    return Snapshot(records=records, ids=dict(ids), text=text, digest=hash_str(text))


def _dump(records: Iterable[SnapshotRecord]) -> str:
    indent = get_sync_config().snapshot_indent
    return json.dumps([record.to_dict() for record in records], indent=indent, sort_keys=True)


def _canonical_order(model: NodeModel) -> list[Node]:
    roots = sorted(model.roots, key=descendant_count)
    ordered: list[Node] = []
    for root in roots:
        ordered.extend(iter_subtree(root, include_next=True))
    return ordered


def _record(node: Node) -> SnapshotRecord:
    return SnapshotRecord(
        id=node.id,
        type=node.type.value,
        fields=dict(node.fields),
        slots={slot: None if child is None else child.id for slot, child in node.slots.items()},
        next=None if node.next is None else node.next.id,
    )


def _first_occurrence_lines(records: list[SnapshotRecord]) -> dict[str, int]:
    """Line of the first mention of every id in the dumped text.

    The dump layout is fixed by ``sort_keys`` and a positive indent, so each
    record occupies::

        {                         <- record start
          "fields": {...},        <- 1 line, or len(fields) + 2 lines
          "id": ...,
          "next": ...,
          "slots": {...},         <- 1 line, or len(slots) + 2 lines
          "type": ...
        }

    and the whole list is wrapped in ``[`` / ``]`` lines.
    """
    first: dict[str, int] = {}
    line = 2
    for record in records:
        fields_lines = len(record.fields) + 2 if record.fields else 1
        id_line = line + 1 + fields_lines
        next_line = id_line + 1
        first.setdefault(record.id, id_line)
        if record.next is not None:
            first.setdefault(record.next, next_line)
        for offset, slot in enumerate(sorted(record.slots), start=1):
            child = record.slots[slot]
            if child is not None:
                first.setdefault(child, next_line + 1 + offset)
        slots_lines = len(record.slots) + 2 if record.slots else 1
        line = next_line + slots_lines + 3
    return first
