"""Reactions — eager side effects driven by node reads.

A computed node waits to be read; a reaction re-runs as soon as a node it
read is written. It joins the notification pass as an ordinary entry, so
the at-most-once-per-flush rule that protects listeners also keeps a
reaction that writes what it reads from looping.

    autorun(fn)                    run fn now and after every relevant write
    reaction(data_fn, effect_fn)   call effect_fn when data_fn's result changes

The effect of reaction() is kept in _anchor.setter_fns and the last data
value in _anchor.cached_values, beside the computed-node state of the same
shape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeVar

from pathfx import _anchor, _paths, _tracking

if TYPE_CHECKING:
    from pathfx._notify import Pass, Write

T = TypeVar("T")

_UNSET = object()


class Reaction:
    """Handle for a running side effect. dispose() stops it for good."""

    __slots__ = ("_id",)

    def __init__(self, fn: Callable[[], Any]) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = {}
        _anchor.disposed[self._id] = False

    @property
    def _fn(self) -> Callable[[], Any]:
        return _anchor.derivation_fns[self._id]

    @property
    def active(self) -> bool:
        return not _anchor.disposed[self._id]

    def _invalidate(self, p: Pass, observed_id: int, write: Write) -> None:
        p.schedule(self)

    def fire(self, event) -> None:
        if self.active:
            self._run()

    def _evaluate(self) -> Any:
        """Call fn with tracking; edges are replaced even if fn raises."""
        edges: dict[int, bool] = {}
        try:
            with _tracking.observing() as edges:
                return self._fn()
        finally:
            _tracking.rebind(self, edges)

    def _run(self) -> None:
        self._evaluate()

    def dispose(self) -> None:
        _anchor.disposed[self._id] = True
        _tracking.release(self)
        _anchor.cached_values.pop(self._id, None)

    def __repr__(self) -> str:
        state = "active" if self.active else "disposed"
        return f"{type(self).__name__}({getattr(self._fn, '__name__', '?')}, {state})"


class _DataReaction(Reaction):
    """reaction(): tracks data_fn, hands changed results to the effect."""

    __slots__ = ()

    def __init__(self, data_fn: Callable[[], T], effect_fn: Callable[[T], None]) -> None:
        super().__init__(data_fn)
        _anchor.setter_fns[self._id] = effect_fn
        _anchor.cached_values[self._id] = _UNSET

    def _run(self) -> None:
        value = self._evaluate()
        last = _anchor.cached_values[self._id]
        if last is not _UNSET and _paths.same(last, value):
            return
        _anchor.cached_values[self._id] = value
        _anchor.setter_fns[self._id](value)

    def _prime(self) -> None:
        """Record data_fn's first result without calling the effect."""
        _anchor.cached_values[self._id] = self._evaluate()


def autorun(fn: Callable[[], Any]) -> Reaction:
    """Run fn now, then again whenever a node it read is written.

    Usage:
        state = observable({"count": 0})
        seen = []

        r = autorun(lambda: seen.append(state.count.get()))
        state.count.set(1)   # seen == [0, 1]
        r.dispose()
        state.count.set(2)   # seen == [0, 1]
    """
    r = Reaction(fn)
    r._run()
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Reaction:
    """Call effect_fn(value) whenever data_fn's tracked result changes.

    data_fn runs once at setup to find its dependencies; the effect only
    sees that first value when ``fire_immediately`` is set. Results are
    compared like node writes (same type and ==), so a data_fn that maps
    many states onto one value does not re-fire the effect.

    Usage:
        user = observable({"first": "Ada", "last": "Lovelace"})
        reaction(
            lambda: f"{user.first.get()} {user.last.get()}",
            lambda full: print(full),
        )
        user.first.set("Augusta")   # prints "Augusta Lovelace"
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        r._prime()
    return r
