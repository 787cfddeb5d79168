"""A block editor and a text editor on one document.

Text edits reach the model without disturbing node identity; model edits
reach the text as minimal splices, keeping the user's formatting.
"""

from blocksync import NodeType, Session

session = Session('{\n  "todo": [\n    "write",\n    "test"\n  ]\n}')

todo = session.model.root.children("MEMBERS")[0]  # type: ignore[union-attr]
items = todo.slots["VALUE"]
first_id = items.children("ITEMS")[0].id  # type: ignore[union-attr]

# The user types in the text editor.
session.sync_from_text('{\n  "todo": [\n    "write",\n    "test",\n    "ship"\n  ]\n}')
assert items.children("ITEMS")[0].id == first_id  # type: ignore[union-attr]

# The user drags a new block into the list.
model = session.model
model.insert_after(
    items.children("ITEMS")[0],  # type: ignore[union-attr]
    model.create_node(NodeType.SCALAR, {"VALUE": '"review"'}),
)
result = session.sync_from_model()

print(result.status, result.patch.splices if result.patch else ())
print(session.text)
