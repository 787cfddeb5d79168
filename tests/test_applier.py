"""Tests for blocksync.applier: atomic replay of change sets onto live models."""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from blocksync import (
    AddLink,
    ChangeField,
    ChangeSet,
    CreateNode,
    DeleteNode,
    ModelEvent,
    NodeModel,
    NodeType,
    RemoveLink,
    StructuralEditError,
    TextPatch,
    apply_change_set,
    apply_entries,
    build,
    encode_snapshot,
    reconcile,
    undo_change_set,
)
from blocksync.kinds import ITEMS, NEXT, VALUE


def _events(model: NodeModel) -> list[ModelEvent]:
    events: list[ModelEvent] = []
    model.subscribe(events.append)
    return events


def _same_structure(left: NodeModel, right: NodeModel) -> bool:
    return encode_snapshot(left).text == encode_snapshot(right).text


class TestApply:
    """Replaying a reconciled change set."""

    def test_model_reaches_new_structure(self) -> None:
        live = build('{"B":[1,2,3]}')
        target = build('{"B":[1,3],"C":{"d":[true]}}')
        apply_change_set(live, reconcile(live, target))
        assert _same_structure(live, target)

    def test_one_event_per_entry(self) -> None:
        live = build("[1, 2, 3]")
        change_set = reconcile(live, "[0, 2, [3]]")
        events = _events(live)
        applied = apply_change_set(live, change_set)
        assert len(events) == len(change_set) == len(applied)

    def test_empty_change_set_is_a_no_op(self) -> None:
        live = build("[1]")
        events = _events(live)
        applied = apply_change_set(live, ChangeSet())
        assert len(applied) == 0
        assert events == []

    def test_created_nodes_keep_their_ids(self) -> None:
        live = build("[]")
        target = build("[7]")
        apply_change_set(live, reconcile(live, target))
        seven = target.root.children(ITEMS)[0]  # type: ignore[union-attr]
        assert live[seven.id].fields == {VALUE: "7"}

    def test_text_target_patches(self) -> None:
        text = "[1, 2]"
        text_model, live = build(text), build(text)
        live.set_field(live.root.children(ITEMS)[1], VALUE, "3")  # type: ignore[union-attr]
        patch = apply_change_set(
            text, reconcile(text_model, live), text_model=text_model, model=live
        )
        assert isinstance(patch, TextPatch)
        assert patch.text == "[1, 3]"

    def test_text_target_needs_models(self) -> None:
        with pytest.raises(TypeError):
            apply_change_set("[1]", ChangeSet())  # type: ignore[call-overload]


class TestAtomicity:
    """A change set with any invalid entry changes nothing."""

    def test_invalid_entry_after_valid_ones(self) -> None:
        live = build("[1]")
        before = encode_snapshot(live).text
        events = _events(live)
        entries = [
            CreateNode("fresh", NodeType.SCALAR, {VALUE: "2"}),
            AddLink("fresh", NEXT, "missing"),
        ]
        with pytest.raises(StructuralEditError, match="Unknown node"):
            apply_entries(live, entries)
        assert events == []
        assert "fresh" not in live
        assert encode_snapshot(live).text == before

    @pytest.mark.parametrize(
        ("entry_factory", "message"),
        [
            (lambda a, one: CreateNode(one, NodeType.SCALAR), "already exists"),
            (lambda a, one: DeleteNode(one), "still linked"),
            (lambda a, one: RemoveLink(a, ITEMS, "nope"), "not present"),
            (lambda a, one: AddLink(a, ITEMS, a), "occupied"),
            (lambda a, one: AddLink(one, ITEMS, a), "No slot"),
            (lambda a, one: ChangeField(one, VALUE, "9", "10"), "expected value"),
        ],
    )
    def test_preconditions(self, entry_factory, message: str) -> None:  # type: ignore[no-untyped-def]
        live = build("[1]")
        array = live.root
        assert array is not None
        one = array.children(ITEMS)[0]
        with pytest.raises(StructuralEditError, match=message):
            apply_entries(live, [entry_factory(array.id, one.id)])

    def test_cycle_rejected(self) -> None:
        live = build("[[]]")
        outer = live.root
        assert outer is not None
        inner = outer.children(ITEMS)[0]
        with pytest.raises(StructuralEditError, match="cycle"):
            apply_entries(live, [AddLink(inner.id, ITEMS, outer.id)])


class TestUndo:
    """Inverse entries restore the previous model."""

    def test_round_trip(self) -> None:
        live = build('{"a": [1, 2], "b": 3}')
        before = encode_snapshot(live).text
        applied = apply_change_set(live, reconcile(live, '{"a": [2], "c": {"d": 4}}'))
        assert encode_snapshot(live).text != before
        undo_change_set(live, applied)
        assert encode_snapshot(live).text == before

    def test_inverses(self) -> None:
        assert AddLink("p", "next", "c").inverse() == RemoveLink("p", "next", "c")
        assert ChangeField("n", VALUE, "1", None).inverse() == ChangeField("n", VALUE, None, "1")
        created = CreateNode("n", NodeType.SCALAR, {VALUE: "1"})
        assert created.inverse().inverse() == created

    def test_untyped_delete_has_no_inverse(self) -> None:
        with pytest.raises(ValueError):
            DeleteNode("n").inverse()


json_values = st.recursive(
    st.none() | st.booleans() | st.integers(-3, 3),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.sampled_from(["k", "l", "m"]), children, max_size=3),
    max_leaves=12,
)


class TestProperties:
    @given(json_values, json_values)
    @settings(max_examples=100)
    def test_apply_reaches_target(self, old_value: object, new_value: object) -> None:
        """Applying reconcile(old, new) to old yields new's structure."""
        live = build(json.dumps(old_value))
        target = build(json.dumps(new_value))
        apply_change_set(live, reconcile(live, target))
        assert _same_structure(live, target)
