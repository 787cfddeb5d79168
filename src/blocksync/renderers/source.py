"""Source renderer: regenerate serialized text from a node model.

Each node is emitted in the order its kind's layout defines. A slot emits
its stored prefix, every node of its sibling chain with the separator
between consecutive siblings (and after the last one only when the slot's
``trailing_separator`` is set), then its suffix. Nodes that were never
parsed fall back to the kind's generation rules.

For a model built from text ``t`` with no edits since, the output is ``t``
exactly.

Work is driven by one explicit stack of pending parts; neither nesting
depth nor chain length drives Python recursion.

"""

from __future__ import annotations

from blocksync.kinds import ChainPart, LayoutPart, kind_of
from blocksync.nodes import Node, NodeModel

_Pending = LayoutPart | Node

# Extra top-level nodes only exist in transient edit states; one per line.
_TOPLEVEL_SEPARATOR = "\n"


class SourceRenderer:
    """Render node models back to their serialized form.

    Usage:
            >>> from blocksync import build
            >>> SourceRenderer().render(build('[1, 2]'))
            '[1, 2]'

    """

    __slots__ = ()

    def render(self, model: NodeModel) -> str:
        """Render the full document: leading text, top-level nodes, trailing text."""
        parts: list[_Pending] = []
        for index, root in enumerate(model.roots):
            if index:
                parts.append(_TOPLEVEL_SEPARATOR)
            parts.append(ChainPart(root, _TOPLEVEL_SEPARATOR, False))
        return model.leading + self._emit(parts) + model.trailing

    def render_node(self, node: Node) -> str:
        """Render ``node`` and its subtree, ignoring its following siblings."""
        return self._emit([node])

    def _emit(self, parts: list[_Pending]) -> str:
        out: list[str] = []
        stack: list[_Pending] = list(reversed(parts))
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                if item:
                    out.append(item)
            elif isinstance(item, ChainPart):
                head = item.head
                if head.next is not None:
                    stack.append(ChainPart(head.next, item.separator, item.trailing))
                    stack.append(item.separator)
                elif item.trailing:
                    stack.append(item.separator)
                stack.append(head)
            else:
                stack.extend(reversed(kind_of(item.type).layout(item)))
        return "".join(out)


_RENDERER = SourceRenderer()


def render(model: NodeModel) -> str:
    """Render a whole node model to text.

    Raises:
        RenderError: If a node violates its kind's layout.

    """
    return _RENDERER.render(model)


def render_subtree(node: Node) -> str:
    """Render one node and everything below it."""
    return _RENDERER.render_node(node)
