"""pathfx: path-addressed reactive state trees for Python."""

from importlib.metadata import version as _version

__version__ = _version("pathfx")

from pathfx._notify import Change, ChangeEvent
from pathfx._tracking import get_pending_count, run_tracked
from pathfx.errors import (
    PathfxError,
    ReadOnlyNode,
    NotAnObject,
    UnsafeMutation,
    ComputeFailure,
    CircularDependency,
)
from pathfx.observable import Node, observable, set_default_safe
from pathfx.computed import computed, dispose
from pathfx.proxy import Proxy, proxy
from pathfx.event import Event, event
from pathfx.reaction import Reaction, autorun, reaction
from pathfx.action import action, batch
# textual NOT auto-imported — opt-in only

__all__ = [
    "Node",
    "observable",
    "set_default_safe",
    "computed",
    "dispose",
    "Proxy",
    "proxy",
    "Event",
    "event",
    "Reaction",
    "autorun",
    "reaction",
    "action",
    "batch",
    "Change",
    "ChangeEvent",
    "run_tracked",
    "get_pending_count",
    "PathfxError",
    "ReadOnlyNode",
    "NotAnObject",
    "UnsafeMutation",
    "ComputeFailure",
    "CircularDependency",
]
