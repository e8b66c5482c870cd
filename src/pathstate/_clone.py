"""Structural clone of caller-supplied state.

The store must not alias any structure handed to it at construction.
Rather than round-tripping through a serializer (which would turn tuples
into lists silently, drop callables and mangle non-finite floats), the tree
is rebuilt node by node:

* mappings become plain ``dict`` objects,
* ``list`` and ``tuple`` become ``list`` so numeric path segments can
  address and replace their items,
* scalars (``str``, ``int``, ``float``, ``bool``, ``None``) are kept as is,
* any other object is copied with :func:`copy.deepcopy`.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pathstate.exceptions import InvalidArgumentError

_SCALARS = (str, int, float, bool, bytes, type(None))


def clone_tree(value: Any) -> Any:
    """Return an independent structural copy of *value*."""
    return _clone(value, set())


def _clone(value: Any, active: set[int]) -> Any:
    if isinstance(value, _SCALARS):
        return value

    if isinstance(value, (Mapping, list, tuple)):
        marker = id(value)
        if marker in active:
            raise InvalidArgumentError("State contains a reference cycle", argument="initial")
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                return {key: _clone(item, active) for key, item in value.items()}
            return [_clone(item, active) for item in value]
        finally:
            active.discard(marker)

    return copy.deepcopy(value)
