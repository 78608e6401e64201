"""Observable trees — state addressed by path.

A root created by observable() owns a plain value tree (dicts, lists,
scalars). Every path into that tree, including paths with no value behind
them yet, has exactly one Node handle. Attribute and item access produce
child handles:

    state = observable({"user": {"name": "Ada"}})
    state.user.name.get()          # "Ada"
    state["user"]["age"].set(36)   # adds the "age" key
    state.resolve("user.age") is state.user.age   # True

When a Node is read inside a computed/reaction evaluation the dependency is
registered automatically. Writes queue change records that are flushed to
listeners and dependents when the outermost batch exits.

All state lives in _anchor — handles are thin objects holding an _id.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Mapping

from pathfx import _anchor, _paths, _tracking
from pathfx._notify import ChangeEvent, Listener, Write
from pathfx._paths import MISSING, Key, Path
from pathfx.action import batch
from pathfx.errors import NotAnObject, UnsafeMutation

_default_safe = False


def set_default_safe(flag: bool) -> None:
    """Set the safe-mode default for roots created afterwards.

    In safe mode, direct structural writes (``node.x = v``, ``node["x"] = v``,
    ``del node.x``) raise UnsafeMutation; set()/assign()/delete() must be used.
    """
    global _default_safe
    _default_safe = flag


def register_root(root_id: int) -> Node:
    return _register(root_id, root_id, (), None)


def resolve(root_id: int, path: Path) -> Node:
    """The canonical handle for ``path`` under ``root_id``. Never fails."""
    node_id = _anchor.node_ids.get((root_id, path))
    if node_id is not None:
        return _anchor.handles[node_id]
    parent = resolve(root_id, path[:-1])
    return _register(_anchor.new_id(), root_id, path, parent._id)


def _register(node_id: int, root_id: int, path: Path, parent_id: int | None) -> Node:
    _anchor.node_ids[(root_id, path)] = node_id
    _anchor.node_paths[node_id] = (root_id, path)
    handle = object.__new__(Node)
    object.__setattr__(handle, "_id", node_id)
    _anchor.handles[node_id] = handle
    if parent_id is not None:
        _anchor.children.setdefault(parent_id, []).append(node_id)
    return handle


class Node:
    """A path into a reactive tree."""

    __slots__ = ("_id",)

    def __init__(self) -> None:
        raise TypeError("Node handles come from observable(), computed() or resolve()")

    # --- Identity ---

    @property
    def path(self) -> Path:
        return _anchor.node_paths[self._id][1]

    @property
    def root(self) -> Node:
        return _anchor.handles[_anchor.node_paths[self._id][0]]

    def child(self, key: Key) -> Node:
        root_id, path = _anchor.node_paths[self._id]
        return resolve(root_id, path + (key,))

    def resolve(self, path: str | int | Iterable[Key]) -> Node:
        """Handle for a path relative to this node (dotted string or key sequence)."""
        root_id, base = _anchor.node_paths[self._id]
        return resolve(root_id, base + _paths.normalize(path))

    def exists(self) -> bool:
        """True iff a value is materialized at this path. Not tracked."""
        return self._raw() is not MISSING

    def __getattr__(self, name: str) -> Node:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.child(name)

    def __getitem__(self, key: Key) -> Node:
        return self.child(key)

    # --- Reads ---

    def get(self, shallow: bool = False) -> Any:
        """Read the value. Inside a derivation, registers the dependency.

        With ``shallow=True`` the dependency only triggers on keys being
        added to or removed from this node, not on nested value changes.
        """
        _tracking.track(self._id, shallow)
        value = self._raw()
        return None if value is MISSING else value

    def peek(self) -> Any:
        """Read the value without registering a dependency."""
        value = self._raw()
        return None if value is MISSING else value

    def _raw(self) -> object:
        root_id, path = _anchor.node_paths[self._id]
        derivation = _anchor.derivations.get(root_id)
        if derivation is None:
            return _paths.get_in(_anchor.values[root_id], path)
        value = derivation._value(path)
        if isinstance(value, Node):
            return value.resolve(path)._raw()
        return _paths.get_in(value, path)

    def _stored(self) -> object:
        """Value held in a plain tree; MISSING on derived trees. Never evaluates."""
        root_id, path = _anchor.node_paths[self._id]
        if root_id in _anchor.derivations:
            return MISSING
        return _paths.get_in(_anchor.values[root_id], path)

    # --- Writes ---

    def set(self, value: Any) -> None:
        """Write a value, or apply ``value(current)`` if given a callable."""
        if callable(value):
            value = value(self.peek())
        self._set_value(value)

    def _set_value(self, value: Any) -> None:
        root_id, path = _anchor.node_paths[self._id]
        derivation = _anchor.derivations.get(root_id)
        if derivation is not None:
            derivation._write(path, value)
            return
        with batch():
            self._write(root_id, path, value)

    def _write(self, root_id: int, path: Path, value: Any) -> None:
        tree = _anchor.values[root_id]
        previous = _paths.get_in(tree, path)
        # A container handed back as-is was mutated in place by the caller.
        if _paths.same(previous, value) and not (previous is value and _paths.is_container(value)):
            return
        tree, created = _paths.assoc(tree, path, value)
        _anchor.values[root_id] = tree
        if created is None:
            _tracking.record(Write(self._id, previous, value))
        else:
            # Report the shallowest autovivified slot; cascade reaches this node.
            depth, replaced = created
            top = resolve(root_id, path[:depth])
            _tracking.record(Write(top._id, replaced, _paths.get_in(tree, path[:depth])))

    def assign(self, partial: Mapping[Key, Any]) -> None:
        """Shallow-merge ``partial`` into this node's dict, as one batch."""
        root_id, path = _anchor.node_paths[self._id]
        derivation = _anchor.derivations.get(root_id)
        if derivation is not None:
            derivation._assign(path, partial)
            return
        current = self._raw()
        if current is not MISSING and not isinstance(current, dict):
            if _anchor.safe_flags[root_id]:
                raise UnsafeMutation(path, "assign() on a non-object value")
            raise NotAnObject(path, f"cannot assign keys into {type(current).__name__}")
        with batch():
            for key, value in partial.items():
                self.child(key)._write(root_id, path + (key,), value)

    def delete(self) -> None:
        """Remove this key from its parent; on a root, clear the value."""
        root_id, path = _anchor.node_paths[self._id]
        derivation = _anchor.derivations.get(root_id)
        if derivation is not None:
            derivation._delete(path)
            return
        with batch():
            self._remove(root_id, path)

    def _remove(self, root_id: int, path: Path) -> None:
        tree = _anchor.values[root_id]
        previous = _paths.get_in(tree, path)
        if previous is MISSING:
            return
        if not path:
            _anchor.values[root_id] = MISSING
            _tracking.record(Write(self._id, previous, MISSING))
            return
        _anchor.values[root_id] = _paths.without(tree, path)
        parent_path = path[:-1]
        before = _paths.get_in(tree, parent_path)
        if isinstance(before, list):
            # Splicing shifts later indices, so the list itself is what changed.
            after = _paths.get_in(_anchor.values[root_id], parent_path)
            _tracking.record(Write(resolve(root_id, parent_path)._id, before, after))
        else:
            _tracking.record(Write(self._id, previous, MISSING))

    # --- Direct structural access ---

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self.child(name)._assign_directly(value)

    def __setitem__(self, key: Key, value: Any) -> None:
        self.child(key)._assign_directly(value)

    def __delattr__(self, name: str) -> None:
        self.child(name)._delete_directly()

    def __delitem__(self, key: Key) -> None:
        self.child(key)._delete_directly()

    def _assign_directly(self, value: Any) -> None:
        self._check_safe("direct assignment")
        self._set_value(value)

    def _delete_directly(self) -> None:
        self._check_safe("direct deletion")
        self.delete()

    def _check_safe(self, what: str) -> None:
        root_id, path = _anchor.node_paths[self._id]
        if _anchor.safe_flags.get(root_id, False):
            raise UnsafeMutation(path, f"{what} is disabled in safe mode; use set(), assign() or delete()")

    # --- Subscriptions ---

    def on(self, listener: Callable[[ChangeEvent], None], shallow: bool = False) -> Callable[[], None]:
        """Subscribe to changes at or below this node. Returns an unsubscribe function.

        Shallow listeners only fire for changes at this node itself or keys
        added to / removed from it.
        """
        root_id = _anchor.node_paths[self._id][0]
        derivation = _anchor.derivations.get(root_id)
        if derivation is not None:
            # A never-evaluated derivation has no edges and would never notify.
            derivation._ensure()
        entry = Listener(listener, shallow)
        entries = _anchor.listeners.setdefault(self._id, [])
        entries.append(entry)

        def _unsubscribe() -> None:
            entry.active = False
            try:
                entries.remove(entry)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def off(self, listener: Callable[[ChangeEvent], None]) -> None:
        """Remove the earliest subscription of ``listener`` on this node."""
        entries = _anchor.listeners.get(self._id, [])
        for entry in entries:
            if entry.callback == listener:
                entry.active = False
                entries.remove(entry)
                return

    # --- Collections (child handles, shallow dependency) ---

    def __len__(self) -> int:
        _tracking.track(self._id, True)
        return len(_paths.keys_of(self._raw()))

    def __iter__(self) -> Iterator[Node]:
        _tracking.track(self._id, True)
        return iter([self.child(key) for key in _paths.keys_of(self._raw())])

    def __contains__(self, key: Key) -> bool:
        _tracking.track(self._id, True)
        return key in _paths.keys_of(self._raw())

    def __bool__(self) -> bool:
        return True

    def map(self, fn: Callable[[Node], Any]) -> list:
        return [fn(node) for node in self]

    def filter(self, fn: Callable[[Node], bool]) -> list[Node]:
        return [node for node in self if fn(node)]

    def find(self, fn: Callable[[Node], bool]) -> Node | None:
        for node in self:
            if fn(node):
                return node
        return None

    def __repr__(self) -> str:
        root_id, path = _anchor.node_paths[self._id]
        where = _paths.format_path(path)
        if root_id in _anchor.derivations:
            return f"Node({where}, computed)"
        return f"Node({where}, {self.peek()!r})"


def observable(initial: Any = MISSING, *, safe: bool | None = None) -> Node:
    """Create a root node holding ``initial``.

    ``safe`` enables safe mode for this root (default: see set_default_safe).
    """
    root_id = _anchor.new_id()
    _anchor.values[root_id] = initial
    _anchor.safe_flags[root_id] = _default_safe if safe is None else safe
    return register_root(root_id)
