"""YAML renderer: block-style YAML generated from node kinds alone.

Stored formatting tokens are ignored. Objects become block mappings and
arrays become block sequences, indented two spaces per level; empty
containers stay in flow form (``{}``, ``[]``). Keys and scalars are
emitted as their JSON text, which YAML reads as the same values.

Example:
    >>> from blocksync import build
    >>> print(render_yaml(build('{"B": [1, {"c": null}], "D": {}}')), end="")
    "B":
      - 1
      - "c": null
    "D": {}

Work is driven by an explicit stack, like the source renderer.

"""

from __future__ import annotations

from blocksync.errors import RenderError
from blocksync.kinds import KEY, VALUE, NodeType, kind_of
from blocksync.nodes import Node, NodeModel

_STEP = 2
_EMPTY = {NodeType.OBJECT: "{}", NodeType.ARRAY: "[]"}
_DOCUMENT_SEPARATOR = "---\n"

# (node, indent of its continuation lines, text opening its first line)
_Task = tuple[Node, int, str]


class YamlRenderer:
    """Render node models as block-style YAML.

    Usage:
            >>> from blocksync import build
            >>> YamlRenderer().render(build('[1, [2, 3]]'))
            '- 1\\n- - 2\\n  - 3\\n'

    """

    __slots__ = ()

    def render(self, model: NodeModel) -> str:
        """Render every top-level node as one YAML document."""
        return _DOCUMENT_SEPARATOR.join(self.render_node(root) for root in model.roots)

    def render_node(self, node: Node) -> str:
        """Render ``node`` and its subtree, ignoring its following siblings."""
        lines: list[str] = []
        stack: list[_Task | str] = [(node, 0, "")]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                lines.append(item)
            else:
                stack.extend(reversed(self._expand(*item)))
        return "".join(f"{line}\n" for line in lines)

    def _expand(self, node: Node, indent: int, lead: str) -> list[_Task | str]:
        margin = " " * indent
        match node.type:
            case NodeType.SCALAR:
                return [lead + _scalar(node)]
            case NodeType.PAIR:
                return self._pair(node, indent, lead)
            case NodeType.OBJECT | NodeType.ARRAY:
                head = node.slots.get(kind_of(node.type).slots[0])
                if head is None:
                    return [lead + _EMPTY[node.type]]
                parts: list[_Task | str] = []
                for index, child in enumerate(head.chain()):
                    opening = lead if index == 0 else margin
                    if node.type is NodeType.OBJECT:
                        parts.append((child, indent, opening))
                    else:
                        parts.append((child, indent + _STEP, opening + "- "))
                return parts
        raise RenderError(f"no YAML form for {node.type.value} node {node.id!r}")

    def _pair(self, node: Node, indent: int, lead: str) -> list[_Task | str]:
        key = node.fields.get(KEY)
        if key is None:
            raise RenderError(f"pair {node.id!r} has no key")
        value = node.slots.get(VALUE)
        if value is None:
            scalar = node.fields.get(VALUE)
            if scalar is None:
                raise RenderError(f"pair {node.id!r} has no value")
            return [f"{lead}{key}: {scalar}"]
        if value.type is NodeType.SCALAR:
            return [f"{lead}{key}: {_scalar(value)}"]
        if value.type in _EMPTY and value.slots.get(kind_of(value.type).slots[0]) is None:
            return [f"{lead}{key}: {_EMPTY[value.type]}"]
        nested = indent + _STEP
        return [f"{lead}{key}:", (value, nested, " " * nested)]


def _scalar(node: Node) -> str:
    value = node.fields.get(VALUE)
    if value is None:
        raise RenderError(f"scalar {node.id!r} has no value")
    return value


_RENDERER = YamlRenderer()


def render_yaml(model: NodeModel) -> str:
    """Render a whole node model as YAML.

    Raises:
        RenderError: If a node cannot be expressed (e.g. a pair without value).

    """
    return _RENDERER.render(model)
