"""Build a node model from JSON text and render it back, byte for byte."""

from blocksync import build, render, render_yaml

source = '{\n  "name": "blocksync",\n  "tags": [ "sync", "editor" ]\n}\n'

model = build(source)
for node in model:
    print(node)

assert render(model) == source
print(render(model))

# The same model, generated as YAML without its stored formatting.
print(render_yaml(model), end="")
