"""Tests for blocksync.session: two-way synchronization passes."""

import pytest

from blocksync import (
    BlockSyncError,
    EchoGuard,
    IdentityCollisionError,
    ModelEvent,
    NodeType,
    ParseError,
    Session,
    encode_snapshot,
)
from blocksync.config import SyncConfig
from blocksync.kinds import ITEMS, KEY, MEMBERS, VALUE
from blocksync.nodes import Node


def _members(session: Session) -> list[Node]:
    return session.model.root.children(MEMBERS)  # type: ignore[union-attr]


def _items(session: Session) -> list[Node]:
    return session.model.root.children(ITEMS)  # type: ignore[union-attr]


class TestEchoGuard:
    def test_consume(self) -> None:
        guard = EchoGuard()
        assert guard.consume() is False
        with guard.replaying(2):
            assert guard.pending == 2
            assert guard.consume() is True
            assert guard.consume() is True
            assert guard.consume() is False
        assert guard.pending == 0

    def test_restores_on_error(self) -> None:
        guard = EchoGuard()
        with pytest.raises(RuntimeError):
            with guard.replaying(5):
                guard.consume()
                raise RuntimeError("replay failed")
        assert guard.pending == 0

    def test_nested(self) -> None:
        guard = EchoGuard()
        with guard.replaying(1):
            with guard.replaying(2):
                assert guard.pending == 3
            assert guard.pending == 1


class TestTextPass:
    """Text edits carried over to the live model."""

    def test_new_member_keeps_existing_identity(self) -> None:
        session = Session('{"B":[1,2,3]}')
        before = {node.id for node in session.model}
        result = session.sync_from_text('{"B":[1,2,3],"C":4}')

        assert result.status == "synced"
        assert result.change_set is not None
        assert result.change_set.summary() == "+1 nodes, -0 nodes, +1 links, -0 links, ~0 fields"
        after = {node.id for node in session.model}
        assert before < after
        assert [m.fields[KEY] for m in _members(session)] == ['"B"', '"C"']

    def test_own_events_are_not_editor_edits(self) -> None:
        session = Session("[1]")
        session.sync_from_text("[1, 2, {}]")
        assert session.guard.pending == 0
        assert not session.dirty

    def test_unchanged(self) -> None:
        session = Session("[1]")
        assert session.sync_from_text("[1]").status == "unchanged"

    def test_whitespace_only_edit_refreshes_spans(self) -> None:
        session = Session('{"B":[1,2,3]}')
        assert session.sync_from_text('{"B": [1,2,3]}').status == "unchanged"

        array = _members(session)[0].slots[VALUE]
        session.model.remove(array.children(ITEMS)[1])  # type: ignore[union-attr]
        session.sync_from_model()
        assert session.text == '{"B": [1,3]}'

    def test_parse_failure_leaves_model_untouched(self) -> None:
        session = Session("[1, 2]")
        before = encode_snapshot(session.model).text
        result = session.sync_from_text("[1, 2")

        assert result.status == "unsynchronized"
        assert not result.ok
        assert isinstance(result.error, ParseError)
        assert not session.synchronized
        assert encode_snapshot(session.model).text == before

        recovered = session.sync_from_text("[1, 2, 3]")
        assert recovered.status == "synced"
        assert session.synchronized
        assert [n.fields[VALUE] for n in _items(session)] == ["1", "2", "3"]

    def test_fatal_error_keeps_text_and_model_in_step(self) -> None:
        """A pass that raises leaves the buffer on the text the model came from."""
        session = Session("[1, 2]", config=SyncConfig(probe_limit=0))
        before = encode_snapshot(session.model).text

        with pytest.raises(IdentityCollisionError):
            session.sync_from_text("[2]")

        assert session.text == "[1, 2]"
        assert encode_snapshot(session.model).text == before
        assert not session.synchronized
        with pytest.raises(IdentityCollisionError):
            session.sync_from_text("[2]")

    def test_deeply_nested_text(self) -> None:
        session = Session("[1]")
        depth = 1200
        result = session.sync_from_text("[" * depth + "]" * depth)
        assert result.status == "synced"
        node = session.model.root
        for _ in range(depth - 1):
            assert node is not None
            (node,) = node.children(ITEMS)
        assert node is not None
        assert node.children(ITEMS) == []

    def test_initial_parse_error(self) -> None:
        with pytest.raises(ParseError):
            Session("{")


class TestModelPass:
    """Editor edits carried over to the text buffer."""

    def test_delete_item(self) -> None:
        session = Session('{"B":[1,2,3]}')
        session.sync_from_text('{"B":[1,2,3],"C":4}')
        array = _members(session)[0].slots[VALUE]
        session.model.remove(array.children(ITEMS)[1])  # type: ignore[union-attr]
        assert session.dirty

        result = session.sync_from_model()
        assert result.status == "synced"
        assert result.patch is not None
        assert not result.patch.full_render
        assert session.text == '{"B":[1,3],"C":4}'
        assert not session.dirty

    def test_unchanged(self) -> None:
        session = Session("[1]")
        assert session.sync_from_model().status == "unchanged"

    def test_consecutive_edits(self) -> None:
        session = Session("[\n  1,\n  2\n]")
        session.model.set_field(_items(session)[0], VALUE, "10")
        session.sync_from_model()
        session.model.insert_after(
            _items(session)[1],
            session.model.create_node(NodeType.SCALAR, {VALUE: "3"}),
        )
        session.sync_from_model()
        assert session.text == "[\n  10,\n  2,\n  3\n]"

    def test_auto_sync(self) -> None:
        session = Session("[1, 2]", auto_sync=True)
        session.model.set_field(_items(session)[0], VALUE, "3")
        assert session.text == "[3, 2]"
        assert not session.dirty

    def test_close_stops_listening(self) -> None:
        session = Session("[1, 2]", auto_sync=True)
        session.close()
        session.model.set_field(_items(session)[0], VALUE, "3")
        assert session.text == "[1, 2]"


class TestUndo:
    def test_undo_text_pass(self) -> None:
        session = Session('{"B":[1,2,3]}')
        session.sync_from_text('{"B":[1,2,3],"C":4}')
        result = session.undo()
        assert result.status == "synced"
        assert session.text == '{"B":[1,2,3]}'
        assert len(_members(session)) == 1

    def test_undo_back_to_empty_container(self) -> None:
        session = Session("[]")
        session.sync_from_text("[\n  1\n]")
        assert session.undo().status == "synced"
        assert session.text == "[\n]"

    def test_nothing_to_undo(self) -> None:
        assert Session("[]").undo().status == "unchanged"


class TestReentrancy:
    def test_nested_pass_is_rejected(self) -> None:
        session = Session("[1]")

        def meddle(event: ModelEvent) -> None:
            session.sync_from_model()

        session.model.subscribe(meddle)
        with pytest.raises(BlockSyncError, match="already running"):
            session.sync_from_text("[1, 2]")


class TestConfig:
    def test_session_config_applies_to_passes(self) -> None:
        session = Session("[\n  1\n]", config=SyncConfig(default_indent="    "))
        model = session.model
        inner = model.create_node(NodeType.ARRAY)
        model.append_child(inner, ITEMS, model.create_node(NodeType.SCALAR, {VALUE: "2"}))
        model.append_child(model.root, ITEMS, inner)  # type: ignore[arg-type]
        session.sync_from_model()
        assert session.text == "[\n  1,\n  [\n      2\n  ]\n]"

    def test_source_file_in_errors(self) -> None:
        session = Session("[1]", config=SyncConfig(source_file="doc.json"))
        result = session.sync_from_text("[")
        assert result.error is not None
        assert str(result.error).startswith("doc.json:")
