"""Tests for blocksync.renderers: regenerating text from node models."""

import pytest

from blocksync import NodeModel, NodeType, RenderError, SlotTokens, build, render
from blocksync.kinds import ITEMS, KEY, MEMBERS, VALUE
from blocksync.renderers import (
    ModelRenderer,
    SourceRenderer,
    YamlRenderer,
    render_subtree,
    render_yaml,
)


class TestRenderParsed:
    """Models built from text."""

    def test_subtree(self) -> None:
        model = build('{"B":[1,2,3]}')
        (pair,) = model.root.children(MEMBERS)  # type: ignore[union-attr]
        assert render_subtree(pair) == '"B":[1,2,3]'

    def test_subtree_ignores_following_siblings(self) -> None:
        model = build("[1, 2, 3]")
        first = model.root.children(ITEMS)[0]  # type: ignore[union-attr]
        assert render_subtree(first) == "1"

    def test_long_chain(self) -> None:
        """Sibling chains never drive recursion depth."""
        source = "[" + ", ".join(str(i) for i in range(10_000)) + "]"
        assert render(build(source)) == source

    def test_renderer_protocol(self) -> None:
        assert isinstance(SourceRenderer(), ModelRenderer)

    def test_emptied_multiline_container(self) -> None:
        model = build("[\n  1,\n  2\n]")
        for item in model.root.children(ITEMS):  # type: ignore[union-attr]
            model.remove(item)
        assert render(model) == "[\n]"

    def test_parsed_empty_container_keeps_its_whitespace(self) -> None:
        assert render(build("[\n  ]")) == "[\n  ]"


class TestRenderGenerated:
    """Nodes created in the editor fall back to generation rules."""

    def test_new_object(self) -> None:
        model = NodeModel()
        obj = model.create_node(NodeType.OBJECT)
        pair = model.create_node(NodeType.PAIR, {KEY: '"k"', VALUE: "true"})
        model.link(obj, MEMBERS, pair)
        assert render(model) == '{"k": true}'

    def test_new_empty_containers(self) -> None:
        model = NodeModel()
        array = model.create_node(NodeType.ARRAY)
        model.append_child(array, ITEMS, model.create_node(NodeType.OBJECT))
        model.append_child(array, ITEMS, model.create_node(NodeType.ARRAY))
        assert render(model) == "[{}, []]"

    def test_new_nested_value_follows_enclosing_indent(self) -> None:
        """Generated tokens continue the indentation of the parsed context."""
        model = build('{\n  "a": 1\n}')
        root = model.root
        assert root is not None
        (first,) = root.children(MEMBERS)

        pair = model.create_node(NodeType.PAIR, {KEY: '"b"'})
        array = model.create_node(NodeType.ARRAY)
        model.append_child(array, ITEMS, model.create_node(NodeType.SCALAR, {VALUE: "2"}))
        model.link(pair, VALUE, array)
        model.insert_after(first, pair)

        assert render(model) == '{\n  "a": 1,\n  "b": [\n    2\n  ]\n}'

    def test_trailing_separator(self) -> None:
        model = build("[1,2]")
        model.root.tokens[ITEMS] = SlotTokens(  # type: ignore[union-attr]
            prefix="[", suffix="]", separator=",", trailing_separator=True
        )
        assert render(model) == "[1,2,]"

    def test_extra_top_level_nodes_one_per_line(self) -> None:
        model = build("[1]")
        model.create_node(NodeType.SCALAR, {VALUE: "2"})
        assert render(model) == "[1]\n2"


class TestRenderErrors:
    """Nodes that violate their kind's layout."""

    def test_pair_without_value(self) -> None:
        model = NodeModel()
        obj = model.create_node(NodeType.OBJECT)
        model.link(obj, MEMBERS, model.create_node(NodeType.PAIR, {KEY: '"k"'}))
        with pytest.raises(RenderError, match="no value"):
            render(model)

    def test_pair_without_key(self) -> None:
        model = NodeModel()
        model.create_node(NodeType.PAIR, {VALUE: "1"})
        with pytest.raises(RenderError, match="no key"):
            render(model)

    def test_scalar_without_value(self) -> None:
        model = NodeModel()
        model.create_node(NodeType.SCALAR)
        with pytest.raises(RenderError):
            render(model)


class TestYamlRenderer:
    """Block-style YAML from the same node model."""

    def test_nested_document(self) -> None:
        model = build('{"B": [1, {"c": null}], "D": {}, "E": []}')
        assert render_yaml(model) == '"B":\n  - 1\n  - "c": null\n"D": {}\n"E": []\n'

    def test_sequence_of_sequences(self) -> None:
        assert render_yaml(build("[1, [2, 3], []]")) == "- 1\n- - 2\n  - 3\n- []\n"

    def test_mapping_in_mapping(self) -> None:
        model = build('{"a": {"b": 1, "c": [true]}}')
        assert render_yaml(model) == '"a":\n  "b": 1\n  "c":\n    - true\n'

    def test_ignores_stored_formatting(self) -> None:
        compact = build('{"a":[1,2]}')
        spaced = build('{\n    "a" : [ 1 ,\n 2 ]\n}')
        assert render_yaml(compact) == render_yaml(spaced) == '"a":\n  - 1\n  - 2\n'

    def test_scalar_document(self) -> None:
        assert render_yaml(build(' "x" ')) == '"x"\n'

    def test_editor_nodes(self) -> None:
        model = NodeModel()
        obj = model.create_node(NodeType.OBJECT)
        model.link(obj, MEMBERS, model.create_node(NodeType.PAIR, {KEY: '"k"', VALUE: "2"}))
        assert YamlRenderer().render_node(obj) == '"k": 2\n'

    def test_extra_top_level_nodes_are_separate_documents(self) -> None:
        model = build("[1]")
        model.create_node(NodeType.SCALAR, {VALUE: "2"})
        assert render_yaml(model) == "- 1\n---\n2\n"

    def test_deep_nesting(self) -> None:
        depth = 3000
        text = render_yaml(build("[" * depth + "]" * depth))
        assert text.startswith("- - - ")
        assert text.endswith("[]\n")

    def test_pair_without_value(self) -> None:
        model = NodeModel()
        obj = model.create_node(NodeType.OBJECT)
        model.link(obj, MEMBERS, model.create_node(NodeType.PAIR, {KEY: '"k"'}))
        with pytest.raises(RenderError, match="no value"):
            render_yaml(model)

    def test_renderer_protocol(self) -> None:
        assert isinstance(YamlRenderer(), ModelRenderer)
