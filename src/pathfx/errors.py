"""Exceptions raised by pathfx operations.

All errors are raised synchronously by the call that caused them, except
ComputeFailure: a derived node stores the error from its evaluation and
raises it when next read.
"""

from __future__ import annotations

from pathfx._paths import Path, format_path


class PathfxError(Exception):
    """Base class for pathfx errors."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message} at '{format_path(path)}'")


class ReadOnlyNode(PathfxError, TypeError):
    """Write attempted on a derived node that has no setter."""


class NotAnObject(PathfxError, TypeError):
    """assign() on a value that is not a dict."""


class UnsafeMutation(PathfxError, TypeError):
    """Direct structural mutation of a node in safe mode."""


class ComputeFailure(PathfxError, RuntimeError):
    """A derived node's compute function raised during its last evaluation."""


class CircularDependency(PathfxError, RuntimeError):
    """A derived node was read while it was still evaluating."""
