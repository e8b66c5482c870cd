"""Nested state tree addressed by dot-separated paths.

This is the only component that mutates the tree.  It knows nothing about
subscriptions or transactions; the store facade layers those on top.

Intermediate nodes created on write are always plain dicts, even when the
segment that follows is numeric.  ``set("rows.0.name", ...)`` on an empty
tree therefore yields ``{"rows": {"0": {"name": ...}}}``, not a list.  An
existing list is only ever addressed, never created.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pathstate._clone import clone_tree
from pathstate.exceptions import InvalidArgumentError
from pathstate.state.paths import parse_index, split_path

_MISSING: Any = object()


def _is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _list_index(node: list[Any], segment: str, path: str) -> int:
    index = parse_index(segment)
    if index is None:
        raise InvalidArgumentError(
            f"Segment {segment!r} of {path!r} addresses a list and must be a non-negative index",
            argument="path",
        )
    return index


def _store_at(node: list[Any], index: int, value: Any) -> None:
    if index < len(node):
        node[index] = value
        return
    # Writing past the end pads the gap with None.
    node.extend([None] * (index - len(node)))
    node.append(value)


def lookup(node: Any, segments: list[str], default: Any = None) -> Any:
    """Resolve *segments* below *node*, returning *default* when they do not."""
    for segment in segments:
        if isinstance(node, dict):
            node = node.get(segment, _MISSING)
            if node is _MISSING:
                return default
        elif isinstance(node, list):
            index = parse_index(segment)
            if index is None or index >= len(node):
                return default
            node = node[index]
        else:
            return default
    return node


class PathStore:
    """Owns the state tree and resolves paths to read/write locations."""

    __slots__ = ("_root",)

    def __init__(self, initial: Mapping[str, Any] | None = None, *, clone: bool = True) -> None:
        if initial is None:
            initial = {}
        if not isinstance(initial, Mapping):
            raise InvalidArgumentError(
                f"Initial state must be a mapping, got {type(initial).__name__}",
                argument="initial",
            )
        self._root: dict[str, Any] = clone_tree(initial) if clone else dict(initial)

    @property
    def root(self) -> dict[str, Any]:
        return self._root

    def get(self, path: str | None = None, default: Any = None) -> Any:
        """Return the value at *path*, or *default* when it does not resolve.

        An empty path returns the live root.  Composite values are returned
        by reference; callers must not mutate them.
        """
        if not path:
            return self._root
        return lookup(self._root, split_path(path), default)

    def has(self, path: str) -> bool:
        return self.get(path, _MISSING) is not _MISSING

    def set(self, path: str, value: Any) -> tuple[Any, Any]:
        """Write *value* at *path*, creating intermediate dicts as needed.

        Returns ``(value, old_value)``; ``old_value`` is ``None`` when the
        location did not exist.
        """
        *parents, key = split_path(path)
        node: Any = self._root
        for segment in parents:
            node = self._descend(node, segment, path)

        if isinstance(node, list):
            index = _list_index(node, key, path)
            old_value = node[index] if index < len(node) else None
            _store_at(node, index, value)
        else:
            old_value = node.get(key)
            node[key] = value
        return value, old_value

    def detach_parents(self, path: str, owned: dict[int, Any]) -> None:
        """Replace each existing container above *path* with a shallow copy.

        Containers already in *owned* (keyed by ``id``) are left alone; new
        copies are added to it.  Objects that were in the tree before the
        first call are never mutated by later writes to *path*.
        """
        node: Any = self._root
        for segment in split_path(path)[:-1]:
            if isinstance(node, list):
                index = parse_index(segment)
                if index is None or index >= len(node):
                    return
                child = node[index]
            else:
                child = node.get(segment)
            if not _is_container(child):
                return
            if id(child) not in owned:
                child = dict(child) if isinstance(child, dict) else list(child)
                owned[id(child)] = child
                if isinstance(node, list):
                    node[index] = child
                else:
                    node[segment] = child
            node = child

    def clear(self) -> None:
        self._root.clear()

    @staticmethod
    def _descend(node: dict[str, Any] | list[Any], segment: str, path: str) -> Any:
        if isinstance(node, list):
            index = _list_index(node, segment, path)
            child = node[index] if index < len(node) else None
            if not _is_container(child):
                child = {}
                _store_at(node, index, child)
            return child

        child = node.get(segment)
        if not _is_container(child):
            child = {}
            node[segment] = child
        return child
