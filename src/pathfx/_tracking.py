"""Dependency tracking engine — the heart of pathfx.

Uses a contextvar to hold the innermost observing context. Every tracked
node read (Node.get) while a context is active records an edge on it,
building the dependency graph automatically.

Batching: writes queue change records instead of notifying directly. When
the outermost batch exits, the queue is flushed in passes; writes made by
listeners during a pass queue the next pass.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

from pathfx import _anchor, _notify

if TYPE_CHECKING:
    from pathfx._notify import Write

T = TypeVar("T")

logger = logging.getLogger("pathfx.tracking")


class _Context:
    __slots__ = ("edges",)

    def __init__(self) -> None:
        self.edges: dict[int, bool] = {}  # node_id -> shallow


# The innermost observing context. When set, Node.get() registers an edge.
current_context: contextvars.ContextVar[_Context | None] = contextvars.ContextVar(
    "current_context", default=None
)

# Batch depth counter. When > 0, change records are queued.
_batch_depth: int = 0

# Writes recorded during a batch, awaiting flush.
_pending: list[Write] = []


def track(node_id: int, shallow: bool = False) -> None:
    """Record a read of ``node_id`` in the innermost context, if any."""
    ctx = current_context.get()
    if ctx is None:
        return
    if shallow:
        ctx.edges.setdefault(node_id, True)
    else:
        ctx.edges[node_id] = False


@contextmanager
def observing() -> Iterator[dict[int, bool]]:
    """Run the body in a fresh context; yields the edge mapping it fills.

    The mapping stays valid if the body raises, so a failed evaluation
    still knows what it read.
    """
    ctx = _Context()
    token = current_context.set(ctx)
    try:
        yield ctx.edges
    finally:
        current_context.reset(token)


@contextmanager
def untracked() -> Iterator[None]:
    """Suspend tracking for the body."""
    token = current_context.set(None)
    try:
        yield
    finally:
        current_context.reset(token)


def run_tracked(fn: Callable[[], T]) -> tuple[T, dict[int, bool]]:
    """Run fn in a fresh context. Returns (result, edges)."""
    with observing() as edges:
        result = fn()
    return result, edges


def rebind(derivation, edges: dict[int, bool]) -> None:
    """Replace a derivation's edges with ``edges`` (never merged)."""
    old = _anchor.dependencies[derivation._id]
    for node_id in old:
        if node_id not in edges:
            _anchor.observers[node_id].pop(derivation, None)
    for node_id, shallow in edges.items():
        _anchor.observers.setdefault(node_id, {})[derivation] = shallow
    _anchor.dependencies[derivation._id] = dict(edges)


def release(derivation) -> None:
    """Drop every edge of a derivation."""
    rebind(derivation, {})


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending writes."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0 and _pending:
        _flush_pending()


def record(write: Write) -> None:
    _pending.append(write)


def _flush_pending() -> None:
    """Run passes until no listener queues further writes."""
    global _batch_depth
    fired: set = set()
    _batch_depth += 1
    try:
        # Listeners must not leak reads into a derivation whose write caused the flush.
        with untracked():
            while _pending:
                # Snapshot and clear — listeners may queue new writes during the pass.
                batch = list(_pending)
                _pending.clear()
                _notify.run_pass(batch, fired)
    except BaseException:
        if _pending:
            logger.debug("Dropping %d queued writes after listener error", len(_pending))
        raise
    finally:
        _batch_depth -= 1
        _pending.clear()


def get_pending_count() -> int:
    """Number of writes waiting to be flushed. Useful for testing."""
    return len(_pending)
