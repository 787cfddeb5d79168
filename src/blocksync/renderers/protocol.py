"""ModelRenderer protocol: stable interface for node-model renderers.

Any renderer that implements ``render(model) -> str`` conforms to this
protocol. The built-in ``SourceRenderer`` is the reference implementation.

Example:
    from blocksync.renderers.protocol import ModelRenderer

    def save(renderer: ModelRenderer, model: NodeModel) -> str:
        return renderer.render(model)

"""

from typing import Protocol, runtime_checkable

from blocksync.nodes import Node, NodeModel


@runtime_checkable
class ModelRenderer(Protocol):
    """Protocol for node-model renderers.

    Implementations must accept a NodeModel and return a rendered string.
    The built-in ``SourceRenderer`` conforms to this protocol.

    """

    def render(self, model: NodeModel) -> str:
        """Render a whole document to a string.

        Args:
            model: The node model to render.

        Returns:
            Rendered string output.

        """
        ...

    def render_node(self, node: Node) -> str:
        """Render one node and its subtree, without its following siblings."""
        ...
