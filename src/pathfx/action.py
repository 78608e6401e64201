"""Actions and batches — grouped state mutations.

Every write already runs inside its own batch. Wrapping several writes in an
@action or ``with batch()`` defers the notification pass until the outermost
scope exits, so listeners and reactions see all the writes at once, as one
ChangeEvent each, instead of one intermediate state per write.
"""

from __future__ import annotations

import functools
from typing import TypeVar, Callable, ParamSpec
from contextlib import contextmanager
from pathfx._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all node writes inside fn.

    Listeners only fire after fn returns, not during.

    Usage:
        state = observable({"a": 0, "b": 0})

        @action
        def swap():
            a, b = state.a.get(), state.b.get()
            state.a.set(b)
            state.b.set(a)
            # listeners see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batch():
            return fn(*args, **kwargs)

    return wrapper


@contextmanager
def batch():
    """Context manager for batching writes.

    Usage:
        with batch():
            state.a.set(1)
            state.b.set(2)
            # listeners fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()
