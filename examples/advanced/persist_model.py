"""Persist the editor's model next to the text, and restore it with ids intact."""

from blocksync import build, render
from blocksync.serialization import from_json, to_json

model = build('[1, {"nested": [true, null]}]')

payload = to_json(model, indent=2)
restored = from_json(payload)

assert [node.id for node in restored] == [node.id for node in model]
print(render(restored))
