"""Change propagation — turns queued writes into listener calls.

One pass takes the writes queued by a batch and, for each, walks:

1. the written node itself (deep listeners; shallow ones unless the node
   is a container that kept the same keys),
2. its ancestors, nearest first (deep listeners; shallow ones only on the
   direct parent and only when a key was added or removed),
3. registered descendants whose value differs between the old and new
   subtree (shallow entries there follow the same key-set rule),
4. derivations with an edge on any node matched above. A derived node
   invalidated here queues a write for its own root, processed later in
   the same pass.

Listener calls are collected first and made once collection is done, so a
listener sees one ChangeEvent per pass however many writes reached it.
"""

from __future__ import annotations

from collections import deque
from typing import Callable

from pathfx import _anchor
from pathfx._paths import MISSING, Path, child, is_container, keys_of, same


class _Stale:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<stale>"


# New value of an invalidated derived node: not known until re-read.
STALE = _Stale()


class Write:
    """A queued change record: the value at node_id went from previous to current."""

    __slots__ = ("node_id", "previous", "current")

    def __init__(self, node_id: int, previous: object, current: object) -> None:
        self.node_id = node_id
        self.previous = previous
        self.current = current

    def __repr__(self) -> str:
        return f"Write({self.node_id}, {self.previous!r} -> {self.current!r})"


class Change:
    """One change seen by a listener. ``path`` is relative to the listened node."""

    __slots__ = ("path", "previous", "removed")

    def __init__(self, path: Path, previous: object, removed: bool) -> None:
        self.path = path
        self.previous = None if previous is MISSING else previous
        self.removed = removed

    def __repr__(self) -> str:
        kind = "removed" if self.removed else "changed"
        return f"Change({self.path!r}, {kind}, previous={self.previous!r})"


class ChangeEvent:
    """What a listener receives: the listened node and the changes under it."""

    __slots__ = ("node", "changes")

    def __init__(self, node, changes: list[Change]) -> None:
        self.node = node
        self.changes = changes

    @property
    def value(self) -> object:
        return self.node.peek()

    def __repr__(self) -> str:
        return f"ChangeEvent({self.node!r}, {self.changes!r})"


class Listener:
    """A subscription entry. ``active`` goes False once unsubscribed."""

    __slots__ = ("callback", "shallow", "active")

    def __init__(self, callback: Callable[[ChangeEvent], None], shallow: bool) -> None:
        self.callback = callback
        self.shallow = shallow
        self.active = True

    def fire(self, event: ChangeEvent) -> None:
        self.callback(event)


class Pass:
    __slots__ = ("work", "calls", "invalidated", "relinked")

    def __init__(self, writes: list[Write]) -> None:
        self.work: deque[Write] = deque(writes)
        self.calls: dict = {}  # entry -> ChangeEvent | None, in firing order
        self.invalidated: set = set()
        self.relinked: list = []

    def enqueue(self, write: Write) -> None:
        self.work.append(write)

    def notify(self, entry: Listener, node_id: int, change: Change) -> None:
        event = self.calls.get(entry)
        if event is None:
            self.calls[entry] = ChangeEvent(_anchor.handles[node_id], [change])
        else:
            event.changes.append(change)

    def schedule(self, entry) -> None:
        self.calls.setdefault(entry, None)


def run_pass(writes: list[Write], fired: set) -> None:
    """Collect and dispatch one pass. ``fired`` spans the whole flush."""
    p = Pass(writes)
    while p.work:
        _collect(p, p.work.popleft())
    # Re-resolve aliases whose selector changed, so subscribers follow the new target.
    for derivation in p.relinked:
        derivation._ensure()
    for entry, event in list(p.calls.items()):
        if entry.active and entry not in fired:
            fired.add(entry)
            entry.fire(event)


def _collect(p: Pass, write: Write) -> None:
    root_id, path = _anchor.node_paths[write.node_id]
    removed = write.current is MISSING
    key_added_or_removed = write.current is not STALE and (write.previous is MISSING or removed)
    hits: list = []

    own_keys_changed = _key_set_changed(write.previous, write.current)
    _visit(p, write.node_id, (), write.previous, removed, own_keys_changed, hits)

    for depth in range(1, len(path) + 1):
        ancestor_id = _anchor.node_ids[(root_id, path[:-depth])]
        _visit(
            p, ancestor_id, path[-depth:], write.previous, removed,
            depth == 1 and key_added_or_removed, hits,
        )

    _cascade(p, write.node_id, write.previous, write.current, hits)

    for derivation, observed_id in hits:
        derivation._invalidate(p, observed_id, write)


def _cascade(p: Pass, node_id: int, previous: object, current: object, hits: list) -> None:
    for child_id in _anchor.children.get(node_id, ()):
        key = _anchor.node_paths[child_id][1][-1]
        old = child(previous, key)
        new = current if current is STALE else child(current, key)
        if new is not STALE and same(old, new):
            continue
        _visit(p, child_id, (), old, new is MISSING, _key_set_changed(old, new), hits)
        _cascade(p, child_id, old, new, hits)


def _visit(
    p: Pass,
    node_id: int,
    rel_path: Path,
    previous: object,
    removed: bool,
    include_shallow: bool,
    hits: list,
) -> None:
    for entry in _anchor.listeners.get(node_id, ()):
        if entry.shallow and not include_shallow:
            continue
        p.notify(entry, node_id, Change(rel_path, previous, removed))
    for derivation, shallow in list(_anchor.observers.get(node_id, {}).items()):
        if shallow and not include_shallow:
            continue
        hits.append((derivation, node_id))


def _key_set_changed(previous: object, current: object) -> bool:
    """False only when a container kept exactly the same keys."""
    if current is STALE or not (is_container(previous) and is_container(current)):
        return True
    return type(previous) is not type(current) or keys_of(previous) != keys_of(current)
