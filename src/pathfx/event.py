"""Events — valueless dispatch channels.

An Event has no value and takes no part in dependency tracking: fire()
calls the current listeners synchronously, in subscription order. map() and
filter() derive chained events; dispose() tears down a chain.
"""

from __future__ import annotations

from typing import Any, Callable

from pathfx._notify import Listener

Disposer = Callable[[], None]


class Event:
    """Push-based dispatch channel with operator chaining."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._children: list[Event] = []  # downstream events for dispose
        self._disposed = False
        self._parent_disposer: Disposer | None = None

    def fire(self, payload: Any = None) -> None:
        """Call every listener with ``payload``."""
        if self._disposed:
            return
        for entry in list(self._listeners):
            # Skips listeners unsubscribed earlier in this dispatch.
            if entry.active:
                entry.callback(payload)

    def on(self, listener: Callable[[Any], None]) -> Disposer:
        """Register a listener. Returns a function that removes it."""
        entry = Listener(listener, shallow=False)
        self._listeners.append(entry)

        def _unsubscribe() -> None:
            entry.active = False
            try:
                self._listeners.remove(entry)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    def off(self, listener: Callable[[Any], None]) -> None:
        for entry in self._listeners:
            if entry.callback == listener:
                entry.active = False
                self._listeners.remove(entry)
                return

    def map(self, fn: Callable[[Any], Any]) -> Event:
        """Derived event firing ``fn(payload)``."""
        child = Event()
        child._parent_disposer = self._track_child(child)
        self.on(lambda payload: child.fire(fn(payload)))
        return child

    def filter(self, fn: Callable[[Any], bool]) -> Event:
        """Derived event firing only payloads where fn returns True."""
        child = Event()
        child._parent_disposer = self._track_child(child)
        self.on(lambda payload: child.fire(payload) if fn(payload) else None)
        return child

    def dispose(self) -> None:
        """Tear down this event and all downstream children."""
        self._disposed = True
        for entry in self._listeners:
            entry.active = False
        self._listeners.clear()
        for child in list(self._children):
            child.dispose()
        self._children.clear()
        if self._parent_disposer is not None:
            self._parent_disposer()
            self._parent_disposer = None

    def _track_child(self, child: Event) -> Disposer:
        """Register child for dispose propagation. Returns a disposer that removes it."""
        self._children.append(child)

        def _remove() -> None:
            try:
                self._children.remove(child)
            except ValueError:
                pass

        return _remove

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._listeners)} listeners"
        return f"Event({state})"


def event() -> Event:
    return Event()
