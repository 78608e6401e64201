"""Path helpers — traversal and copy-on-write edits of plain value trees.

Trees are built from dicts, lists and scalars. Nothing here knows about
nodes or listeners; the registry and propagation layers build on these.
"""

from __future__ import annotations

from typing import Iterable


class _Missing:
    """Marks a path with no value behind it (distinct from a stored None)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<missing>"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

Key = str | int
Path = tuple


def normalize(path: str | int | Iterable[Key]) -> Path:
    """Turn a dotted string, a single key or a key sequence into a path tuple.

    All-digit segments of a dotted string become list indices:
    ``"todos.0.done"`` -> ``("todos", 0, "done")``.
    """
    if isinstance(path, str):
        if not path:
            return ()
        return tuple(int(seg) if seg.isdigit() else seg for seg in path.split("."))
    if isinstance(path, int):
        return (path,)
    return tuple(path)


def format_path(path: Path) -> str:
    return ".".join(str(key) for key in path) or "<root>"


def is_container(value: object) -> bool:
    return isinstance(value, (dict, list))


def keys_of(value: object) -> list:
    if isinstance(value, dict):
        return list(value)
    if isinstance(value, list):
        return list(range(len(value)))
    return []


def child(value: object, key: Key) -> object:
    if isinstance(value, dict):
        return value.get(key, MISSING)
    if isinstance(value, list) and _is_index(key) and 0 <= key < len(value):
        return value[key]
    return MISSING


def get_in(value: object, path: Path) -> object:
    for key in path:
        value = child(value, key)
        if value is MISSING:
            return MISSING
    return value


def same(old: object, new: object) -> bool:
    """Equal values of the same type count as unchanged."""
    if old is new:
        return True
    if type(old) is not type(new):
        return False
    return bool(old == new)


def put(container: dict | list, key: Key, value: object) -> None:
    if isinstance(container, dict):
        container[key] = value
        return
    if not _is_index(key) or key < 0:
        raise TypeError(f"list index must be a non-negative int, got {key!r}")
    if key < len(container):
        container[key] = value
    else:
        container.extend([None] * (key - len(container)))
        container.append(value)


def remove(container: dict | list, key: Key) -> None:
    del container[key]


def assoc(tree: object, path: Path, value: object) -> tuple[object, tuple | None]:
    """Copy of ``tree`` with ``value`` at ``path``, autovivifying dicts on the way.

    Every container along the path is a new object; untouched branches are
    shared. Returns ``(tree, created)`` where ``created`` is
    ``(depth, previous)`` for the shallowest intermediate slot that was not a
    container, or None if every intermediate already existed.
    """
    created = None
    slot = tree
    for depth, key in enumerate(path[:-1]):
        if not is_container(slot):
            created = (depth, slot)
            break
        slot = child(slot, key)
    else:
        if path and not is_container(slot):
            created = (len(path) - 1, slot)
    return replaced(tree, path, value), created


def replaced(value: object, path: Path, new: object) -> object:
    """Copy of ``value`` with ``new`` at ``path``; untouched branches are shared."""
    if not path:
        return new
    key, rest = path[0], path[1:]
    head = _copy(value)
    put(head, key, replaced(child(value, key), rest, new))
    return head


def without(value: object, path: Path) -> object:
    """Copy of ``value`` with ``path`` removed."""
    if not path:
        return MISSING
    key, rest = path[0], path[1:]
    current = child(value, key)
    if current is MISSING:
        return value
    head = _copy(value)
    if rest:
        put(head, key, without(current, rest))
    else:
        remove(head, key)
    return head


def _copy(value: object) -> dict | list:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        return list(value)
    return {}


def _is_index(key: object) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)
