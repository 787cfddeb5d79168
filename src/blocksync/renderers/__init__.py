"""blocksync renderers.

Renderers convert a node model back into text.

Available Renderers:
- SourceRenderer: Regenerates serialized source from stored formatting tokens
- YamlRenderer: Generates block-style YAML from the node kinds alone

Thread Safety:
Renderers keep all state local to each render() call.
Safe for concurrent use on models that are not being mutated.

"""

from blocksync.renderers.protocol import ModelRenderer
from blocksync.renderers.source import SourceRenderer, render, render_subtree
from blocksync.renderers.yaml import YamlRenderer, render_yaml

__all__ = [
    "ModelRenderer",
    "SourceRenderer",
    "YamlRenderer",
    "render",
    "render_subtree",
    "render_yaml",
]
