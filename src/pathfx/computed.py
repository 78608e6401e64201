"""Computed nodes — derived state with automatic dependency tracking.

A computed node wraps a function. When evaluated, it tracks which nodes the
function reads and caches the result. When any dependency changes, the
cached value is invalidated and the node's listeners are told. On next
read, it re-evaluates.

Computed nodes are lazy — they only recompute when read.

Two variants:
- two-way: computed(get_fn, set_fn). Writes call set_fn, which is expected
  to write the sources; the node then recomputes from them.
- linked: get_fn returns a Node. The computed node becomes an alias and
  forwards reads, writes and child access to that node.

All state lives in _anchor — Computed holds the id of its root node.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, TypeVar

from pathfx import _anchor, _paths, _tracking
from pathfx._notify import STALE, Pass, Write
from pathfx._paths import MISSING, Path
from pathfx.action import batch
from pathfx.errors import CircularDependency, ComputeFailure, NotAnObject, ReadOnlyNode
from pathfx.observable import Node, register_root, resolve

T = TypeVar("T")

logger = logging.getLogger("pathfx.computed")

_UNSET = object()


class Computed:
    """Derivation state behind a computed root node."""

    __slots__ = ("_id",)

    def __init__(
        self,
        root_id: int,
        fn: Callable[[], Any],
        setter: Callable[[Any], None] | None = None,
    ) -> None:
        self._id = root_id
        _anchor.derivation_fns[root_id] = fn
        _anchor.setter_fns[root_id] = setter
        _anchor.cached_values[root_id] = _UNSET
        _anchor.dirty_flags[root_id] = True
        _anchor.dependencies[root_id] = {}
        _anchor.derivations[root_id] = self

    @property
    def _fn(self) -> Callable[[], Any]:
        return _anchor.derivation_fns[self._id]

    @property
    def _setter(self) -> Callable[[Any], None] | None:
        return _anchor.setter_fns[self._id]

    @property
    def _name(self) -> str:
        return getattr(self._fn, "__name__", "computed")

    # --- Evaluation ---

    def _value(self, path: Path = ()) -> Any:
        """The memoized value. Recomputes if stale; raises a stored failure."""
        if self._id in _anchor.evaluating:
            raise CircularDependency(path, f"{self._name} was read during its own evaluation")
        self._ensure()
        error = _anchor.errors.get(self._id)
        if error is not None:
            raise ComputeFailure(path, f"{self._name} raised {error!r}") from error
        return _anchor.cached_values[self._id]

    def _ensure(self) -> None:
        if _anchor.dirty_flags[self._id]:
            self._recompute()

    def _recompute(self) -> None:
        """Re-evaluate the function, replacing its dependency edges."""
        edges: dict[int, bool] = {}
        _anchor.evaluating.add(self._id)
        try:
            with _tracking.observing() as edges:
                result = self._fn()
        except Exception as exc:
            logger.debug("%s raised %r; stored until a dependency changes", self._name, exc)
            _anchor.errors[self._id] = exc
            _anchor.cached_values[self._id] = _UNSET
            _anchor.dirty_flags[self._id] = False
        else:
            _anchor.errors.pop(self._id, None)
            _anchor.cached_values[self._id] = result
            _anchor.dirty_flags[self._id] = False
            if isinstance(result, Node):
                # Aliases follow every change under their target.
                edges = {**edges, result._id: False}
                inner = _anchor.derivations.get(_anchor.node_paths[result._id][0])
                if inner is not None:
                    # A derived target relays nothing until it has edges of its own.
                    inner._ensure()
        finally:
            _anchor.evaluating.discard(self._id)
            edges.pop(self._id, None)
            _tracking.rebind(self, edges)

    def _target(self) -> Node | None:
        """The node this alias forwards to, as of the last evaluation."""
        value = _anchor.cached_values[self._id]
        return value if isinstance(value, Node) else None

    def _resolve_target(self) -> Node | None:
        self._ensure()
        return self._target()

    # --- Invalidation ---

    def _invalidate(self, p: Pass, observed_id: int, write: Write) -> None:
        """Called during a notification pass when a dependency changed.

        We don't recompute eagerly — that happens on next read. A change
        under an alias's target is relayed onto the alias's own tree instead.
        """
        target = self._target()
        if target is not None and observed_id == target._id:
            self._relay(p, target, write)
            return
        if self in p.invalidated:
            return
        p.invalidated.add(self)
        previous = self._previous()
        _anchor.dirty_flags[self._id] = True
        if target is not None:
            p.relinked.append(self)
        p.enqueue(Write(self._id, previous, STALE))

    def _previous(self) -> object:
        target = self._target()
        if target is not None:
            return target._stored()
        value = _anchor.cached_values[self._id]
        return MISSING if value is _UNSET else value

    def _relay(self, p: Pass, target: Node, write: Write) -> None:
        target_path = target.path
        write_path = _anchor.node_paths[write.node_id][1]
        if write_path[: len(target_path)] == target_path:
            node = resolve(self._id, write_path[len(target_path):])
            p.enqueue(Write(node._id, write.previous, write.current))
            return
        # The write replaced an ancestor of the target.
        suffix = target_path[len(write_path):]
        current = write.current if write.current is STALE else _paths.get_in(write.current, suffix)
        p.enqueue(Write(self._id, _paths.get_in(write.previous, suffix), current))

    # --- Writes ---

    def _write(self, path: Path, value: Any) -> None:
        target = self._resolve_target()
        if target is not None:
            target.resolve(path)._set_value(value)
            return
        setter = self._require_setter(path)
        whole = value if not path else _paths.replaced(self._value(path), path, value)
        with batch():
            setter(whole)

    def _assign(self, path: Path, partial: Mapping) -> None:
        target = self._resolve_target()
        if target is not None:
            target.resolve(path).assign(partial)
            return
        setter = self._require_setter(path)
        current = _paths.get_in(self._value(path), path)
        if current is not MISSING and not isinstance(current, dict):
            raise NotAnObject(path, f"cannot assign keys into {type(current).__name__}")
        merged = {**(current or {}), **partial}
        with batch():
            setter(_paths.replaced(self._value(path), path, merged))

    def _delete(self, path: Path) -> None:
        target = self._resolve_target()
        if target is not None:
            target.resolve(path).delete()
            return
        setter = self._require_setter(path)
        with batch():
            setter(None if not path else _paths.without(self._value(path), path))

    def _require_setter(self, path: Path) -> Callable[[Any], None]:
        setter = self._setter
        if setter is None:
            raise ReadOnlyNode(path, f"computed {self._name} has no setter")
        return setter

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert until read."""
        _tracking.release(self)
        _anchor.dirty_flags[self._id] = True
        _anchor.cached_values[self._id] = _UNSET
        _anchor.errors.pop(self._id, None)

    def __repr__(self) -> str:
        if _anchor.dirty_flags[self._id]:
            state = "dirty"
        elif self._id in _anchor.errors:
            state = f"error={_anchor.errors[self._id]!r}"
        else:
            state = f"cached={_anchor.cached_values[self._id]!r}"
        return f"Computed({self._name}, {state})"


def computed(
    fn: Callable[[], T],
    set_fn: Callable[[T], None] | None = None,
) -> Node:
    """Decorator/factory to create a computed root node from a function.

    Usage:
        counter = observable(0)

        @computed
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10

        # Two-way: writes go through the setter
        half = computed(lambda: counter.get() / 2, lambda v: counter.set(v * 2))
        half.set(4)
        counter.get()  # 8

        # Linked: returns a node, so selected aliases todos[index]
        selected = computed(lambda: todos[index.get()])
    """
    root_id = _anchor.new_id()
    Computed(root_id, fn, set_fn)
    return register_root(root_id)


def dispose(node: Node) -> None:
    """Disconnect the computed root of ``node`` from its dependencies."""
    derivation = _anchor.derivations.get(_anchor.node_paths[node._id][0])
    if derivation is not None:
        derivation.dispose()
