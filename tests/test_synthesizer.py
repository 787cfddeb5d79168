"""Tests for blocksync.synthesizer: minimal change sets between two documents."""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from blocksync import (
    AddLink,
    ChangeField,
    CreateNode,
    DeleteNode,
    NodeType,
    ParseError,
    RemoveLink,
    build,
    encode_snapshot,
    reconcile,
    stabilize,
    synthesize,
)
from blocksync.kinds import ITEMS, KEY, MEMBERS, NEXT, VALUE


class TestChangeSets:
    """Entries produced for typical edits."""

    def test_appended_member(self) -> None:
        """Adding a member creates one node and links it after its sibling."""
        old = build('{"B":[1,2,3]}')
        new = build('{"B":[1,2,3],"C":4}')
        change_set = reconcile(old, new)

        pair_b = old.root.children(MEMBERS)[0]  # type: ignore[union-attr]
        pair_c = new.root.children(MEMBERS)[1]  # type: ignore[union-attr]
        (creation,) = change_set.creations
        assert creation.node_id == pair_c.id
        assert creation.node_type is NodeType.PAIR
        assert creation.fields == {KEY: '"C"', VALUE: "4"}
        assert change_set.added_links == (AddLink(pair_b.id, NEXT, pair_c.id),)
        assert change_set.removed_links == ()
        assert change_set.deletions == ()
        assert change_set.field_changes == ()

    def test_field_change(self) -> None:
        old = build("[1,2]")
        change_set = reconcile(old, "[1,5]")
        two = old.root.children(ITEMS)[1]  # type: ignore[union-attr]
        assert change_set.entries() == (ChangeField(two.id, VALUE, "2", "5"),)

    def test_scalar_value_becomes_nested(self) -> None:
        old = build('{"a": 1}')
        new = build('{"a": [1]}')
        change_set = reconcile(old, new)

        pair = old.root.children(MEMBERS)[0]  # type: ignore[union-attr]
        array = new.root.children(MEMBERS)[0].slots[VALUE]  # type: ignore[union-attr]
        assert array is not None
        assert [c.node_type for c in change_set.creations] == [NodeType.ARRAY, NodeType.SCALAR]
        assert AddLink(pair.id, VALUE, array.id) in change_set.added_links
        assert change_set.field_changes == (ChangeField(pair.id, VALUE, "1", None),)

    def test_deleted_middle_item(self) -> None:
        old = build("[1,2,3]")
        one, two, three = old.root.children(ITEMS)  # type: ignore[union-attr]
        change_set = reconcile(old, "[1,3]")
        assert set(change_set.removed_links) == {
            RemoveLink(one.id, NEXT, two.id),
            RemoveLink(two.id, NEXT, three.id),
        }
        assert change_set.deletions == (
            DeleteNode(two.id, NodeType.SCALAR, {VALUE: "2"}, two.meta, {}),
        )
        assert change_set.added_links == (AddLink(one.id, NEXT, three.id),)

    def test_entry_order(self) -> None:
        change_set = reconcile("[1, [2]]", '[{"x": 3}, 1]')
        kinds = [type(entry) for entry in change_set.entries()]
        order = [RemoveLink, DeleteNode, CreateNode, AddLink, ChangeField]
        assert kinds == sorted(kinds, key=order.index)

    def test_id_map(self) -> None:
        old = build("[1, 2]")
        new = build("[1, 2, 3]")
        change_set = reconcile(old, new)
        assert {new_id: old_id for new_id, old_id in change_set.id_map.items()} == {
            n.id: o.id for n, o in zip(new, old)
        }

    def test_creations_carry_spans_and_tokens(self) -> None:
        new = build("[[ 1 ]]")
        change_set = reconcile("[]", new)
        inner = next(c for c in change_set.creations if c.node_type is NodeType.ARRAY)
        assert inner.meta is not None
        assert inner.tokens[ITEMS].prefix == "[ "

    def test_summary(self) -> None:
        change_set = reconcile('{"B":[1,2,3]}', '{"B":[1,2,3],"C":4}')
        assert change_set.summary() == "+1 nodes, -0 nodes, +1 links, -0 links, ~0 fields"
        assert bool(change_set)
        assert not change_set.is_empty

    def test_parse_error(self) -> None:
        with pytest.raises(ParseError):
            reconcile("[1]", "[1,")

    def test_synthesize_from_snapshots(self) -> None:
        """Snapshots alone give the same entries reconcile does."""
        old = build('{"B":[1,2,3]}')
        new = build('{"B":[1,3],"C":4}')
        new_snapshot = encode_snapshot(new)
        old_snapshot = stabilize(encode_snapshot(old), new_snapshot)
        change_set = synthesize(old_snapshot, new_snapshot)
        assert change_set.summary() == reconcile(old, new).summary()


json_values = st.recursive(
    st.none() | st.booleans() | st.integers(-5, 5) | st.sampled_from(["a", "b"]),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.sampled_from(["k", "l", "m"]), children, max_size=3),
    max_leaves=15,
)


class TestProperties:
    """Idempotence and completeness over generated documents."""

    @given(json_values, st.sampled_from([None, 2]))
    @settings(max_examples=100)
    def test_reconcile_with_itself_is_empty(self, value: object, indent: int | None) -> None:
        text = json.dumps(value, indent=indent)
        assert reconcile(text, text).is_empty

    @given(json_values)
    @settings(max_examples=100)
    def test_formatting_only_change_is_empty(self, value: object) -> None:
        compact = json.dumps(value, separators=(",", ":"))
        spaced = json.dumps(value, indent=4)
        assert reconcile(compact, spaced).is_empty
