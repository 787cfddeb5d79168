"""Reconcile two texts and see which nodes were created, deleted, relinked or edited."""

from blocksync import reconcile

old_source = '{"B": [1, 2, 3]}'
new_source = '{"A": 0, "B": [1, 3], "C": 4}'

change_set = reconcile(old_source, new_source)

print(change_set.summary())
for entry in change_set:
    print(f"  {entry}")
