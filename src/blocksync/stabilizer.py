"""Identity stabilizer.

Relabels the old snapshot of a reconciliation pass so that nodes which are
logically the same on both sides carry the same pseudo-id, and nodes that
exist on one side only never share one.

Pairing is by content, not by text replacement:

1. Records of both sides are aligned as sequences of content keys (type
   plus fields) with ``difflib.SequenceMatcher``. Inside replaced runs,
   records of equal type are paired in order, so an edited scalar is a
   field change rather than a delete plus a create.
2. Paired old records take the new record's pseudo-id.
3. Unpaired old records keep their own line, shifted by the line diff of
   the id-masked snapshot texts: every removed or inserted run of N lines
   shifts the lines after it by -N or +N.
4. A shifted id that collides with an id already in use is probed +1,
   +2, ... up to ``SyncConfig.probe_limit`` times; beyond that the pass
   fails with IdentityCollisionError.

"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Callable
from difflib import SequenceMatcher

from blocksync.config import get_sync_config
from blocksync.errors import IdentityCollisionError
from blocksync.snapshot import Snapshot, SnapshotRecord
from blocksync.utils.logger import get_logger

logger = get_logger(__name__)


def stabilize(old: Snapshot, new: Snapshot) -> Snapshot:
    """Return ``old`` relabeled against ``new``.

    Postconditions:
        - every node logically the same on both sides has one pseudo-id
        - all relabeled old ids are distinct
        - an unpaired old id never equals any new id

    Raises:
        IdentityCollisionError: If no free id is found within the probe bound.

    """
    pairs = pair_records(old.records, new.records)
    mapping: dict[str, str] = {
        old.records[i].id: new.records[j].id for i, j in pairs.items()
    }

    in_use = set(new.ids) | set(mapping.values())
    shift = _line_shifter(old.masked_lines(), new.masked_lines())
    limit = get_sync_config().probe_limit

    for index, record in enumerate(old.records):
        if index in pairs:
            continue
        candidate = _renumber(record, shift, in_use, limit)
        mapping[record.id] = candidate
        in_use.add(candidate)

    logger.debug(
        "Stabilized %d old records: %d paired, %d renumbered",
        len(old.records),
        len(pairs),
        len(old.records) - len(pairs),
    )
    return old.relabel(mapping)


def pair_records(
    old: tuple[SnapshotRecord, ...],
    new: tuple[SnapshotRecord, ...],
) -> dict[int, int]:
    """Align records by content; map old record index to new record index."""
    matcher = SequenceMatcher(
        None,
        [record.content_key for record in old],
        [record.content_key for record in new],
        autojunk=False,
    )
    pairs: dict[int, int] = {}
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            pairs.update(zip(range(i1, i2), range(j1, j2), strict=True))
        elif tag == "replace":
            waiting: defaultdict[str, deque[int]] = defaultdict(deque)
            for j in range(j1, j2):
                waiting[new[j].type].append(j)
            for i in range(i1, i2):
                queue = waiting.get(old[i].type)
                if queue:
                    pairs[i] = queue.popleft()
    return pairs


def _line_shifter(old_lines: list[str], new_lines: list[str]) -> Callable[[int], int]:
    """Map an old 1-based line to its position after the edit."""
    opcodes = SequenceMatcher(None, old_lines, new_lines, autojunk=False).get_opcodes()

    def shift(line: int) -> int:
        index = line - 1
        for _tag, i1, i2, j1, _j2 in opcodes:
            if i1 <= index < i2:
                return line + (j1 - i1)
        return line

    return shift


def _renumber(
    record: SnapshotRecord,
    shift: Callable[[int], int],
    in_use: set[str],
    limit: int,
) -> str:
    line_text, _, node_type = record.id.partition("|")
    line = shift(int(line_text))
    candidate = f"{line}|{node_type}"
    probes = 0
    while candidate in in_use:
        probes += 1
        if probes > limit:
            raise IdentityCollisionError(record.id, limit)
        candidate = f"{line + probes}|{node_type}"
    return candidate
