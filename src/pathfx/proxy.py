"""Keyed derived collections.

proxy(key_fn) behaves like a dict whose every entry is a computed node:
``p[key]`` is ``computed(lambda: key_fn(key))``, created on first access and
memoized per key. If key_fn returns a node, the entry is an alias of it.

    users = observable({"u1": {"name": "Ada"}})
    by_id = proxy(lambda uid: users[uid])
    by_id["u1"].name.get()      # "Ada"
    by_id["u1"].name.set("Bo")  # writes users.u1.name
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Hashable

from pathfx.computed import computed
from pathfx.observable import Node


class Proxy:
    """Lazily materialized mapping of key -> derived node."""

    __slots__ = ("_key_fn", "_set_fn", "_nodes")

    def __init__(
        self,
        key_fn: Callable[[Hashable], Any],
        set_fn: Callable[[Hashable, Any], None] | None = None,
    ) -> None:
        self._key_fn = key_fn
        self._set_fn = set_fn
        self._nodes: dict[Hashable, Node] = {}

    def __getitem__(self, key: Hashable) -> Node:
        node = self._nodes.get(key)
        if node is None:
            setter = None if self._set_fn is None else functools.partial(self._set_fn, key)
            node = computed(functools.partial(self._key_fn, key), setter)
            self._nodes[key] = node
        return node

    def __getattr__(self, name: str) -> Node:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __contains__(self, key: Hashable) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def keys(self) -> list:
        """Keys accessed so far."""
        return list(self._nodes)

    def get(self) -> dict:
        """Snapshot of every materialized entry. Tracked like Node.get()."""
        return {key: node.get() for key, node in self._nodes.items()}

    def __repr__(self) -> str:
        return f"Proxy({getattr(self._key_fn, '__name__', '?')}, keys={self.keys()!r})"


def proxy(
    key_fn: Callable[[Hashable], Any],
    set_fn: Callable[[Hashable, Any], None] | None = None,
) -> Proxy:
    return Proxy(key_fn, set_fn)
