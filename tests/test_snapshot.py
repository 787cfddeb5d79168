"""Tests for blocksync.snapshot: canonical snapshots and pseudo-ids."""

import json

from blocksync import NodeType, build, encode_snapshot
from blocksync.config import SyncConfig, sync_config_context
from blocksync.kinds import VALUE
from blocksync.snapshot import ID_MASK
from blocksync.utils.hashing import hash_str

DOCUMENT = '{"a": [1, {"b": null}], "c": "x"}'


class TestCanonicalForm:
    """Determinism and content of the snapshot text."""

    def test_deterministic(self) -> None:
        model = build(DOCUMENT)
        first, second = encode_snapshot(model), encode_snapshot(model)
        assert first.text == second.text
        assert first.digest == second.digest == hash_str(first.text)

    def test_independent_of_transient_ids(self) -> None:
        """Two builds of one text differ in ids but not in snapshot text."""
        one, two = encode_snapshot(build(DOCUMENT)), encode_snapshot(build(DOCUMENT))
        assert set(one.ids.values()).isdisjoint(two.ids.values())
        assert one.text == two.text

    def test_independent_of_formatting(self) -> None:
        compact = encode_snapshot(build('{"a":[1,2]}'))
        spaced = encode_snapshot(build('{\n  "a" : [ 1 , 2 ]\n}'))
        assert compact.text == spaced.text

    def test_omits_spans_and_tokens(self) -> None:
        snapshot = encode_snapshot(build(DOCUMENT))
        payload = json.loads(snapshot.text)
        assert {key for record in payload for key in record} == {
            "fields",
            "id",
            "next",
            "slots",
            "type",
        }

    def test_top_level_order_by_descendant_count(self) -> None:
        model = build("[1, 2]")
        lone = model.create_node(NodeType.SCALAR, {VALUE: "9"})
        snapshot = encode_snapshot(model)
        assert snapshot.ids[snapshot.records[0].id] == lone.id
        assert snapshot.records[1].type == "array"


class TestPseudoIds:
    """Pseudo-ids are ``line|type`` of an id's first mention."""

    def test_example(self) -> None:
        snapshot = encode_snapshot(build("[1]"))
        assert [record.id for record in snapshot.records] == ["4|array", "7|scalar"]

    def test_line_holds_first_mention(self) -> None:
        snapshot = encode_snapshot(build(DOCUMENT))
        lines = snapshot.text.splitlines()
        for record in snapshot.records:
            line, _, node_type = record.id.partition("|")
            assert node_type == record.type
            assert f'"{record.id}"' in lines[int(line) - 1]
            earlier = "\n".join(lines[: int(line) - 1])
            assert f'"{record.id}"' not in earlier

    def test_line_holds_first_mention_with_wider_indent(self) -> None:
        with sync_config_context(SyncConfig(snapshot_indent=4)):
            snapshot = encode_snapshot(build(DOCUMENT))
        lines = snapshot.text.splitlines()
        for record in snapshot.records:
            line = int(record.id.partition("|")[0])
            assert f'"{record.id}"' in lines[line - 1]

    def test_ids_map_to_model(self) -> None:
        model = build(DOCUMENT)
        snapshot = encode_snapshot(model)
        assert sorted(snapshot.ids.values()) == sorted(node.id for node in model)
        for record in snapshot.records:
            assert model[snapshot.transient_id(record.id)].type.value == record.type
            assert record.id in snapshot

    def test_links_use_pseudo_ids(self) -> None:
        snapshot = encode_snapshot(build("[1, 2]"))
        array, one, two = (record.id for record in snapshot.records)
        assert snapshot.links() == [(array, "ITEMS", one), (one, "next", two)]

    def test_masked_lines_hide_ids(self) -> None:
        snapshot = encode_snapshot(build(DOCUMENT))
        masked = "\n".join(snapshot.masked_lines())
        assert len(snapshot.masked_lines()) == len(snapshot.text.splitlines())
        assert f'"{ID_MASK}"' in masked
        assert all(f'"{pseudo}"' not in masked for pseudo in snapshot.ids)

    def test_relabel(self) -> None:
        snapshot = encode_snapshot(build("[1]"))
        renamed = snapshot.relabel({"7|scalar": "40|scalar"})
        assert [record.id for record in renamed.records] == ["4|array", "40|scalar"]
        assert renamed.records[0].slots == {"ITEMS": "40|scalar"}
        assert renamed.ids["40|scalar"] == snapshot.ids["7|scalar"]
