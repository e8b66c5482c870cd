"""Path parsing and validation helpers shared by the state components."""

from __future__ import annotations

from typing import Any

from pathstate.exceptions import InvalidArgumentError

SEPARATOR = "."
WILDCARD = "*"
WILDCARD_SUFFIX = SEPARATOR + WILDCARD


def require_path(path: Any, *, operation: str) -> str:
    """Return *path* if it is a non-empty string, else raise."""
    if not isinstance(path, str):
        raise InvalidArgumentError(
            f"{operation} requires a string path, got {type(path).__name__}",
            argument="path",
        )
    if not path:
        raise InvalidArgumentError(f"{operation} requires a non-empty path", argument="path")
    return path


def split_path(path: str) -> list[str]:
    """Split a dot-separated path into its segments."""
    return path.split(SEPARATOR)


def ancestor_prefixes(segments: list[str]) -> list[str]:
    """Strict ancestor prefixes of a split path, shortest first.

    ``["a", "b", "c"]`` yields ``["a", "a.b"]``.
    """
    prefixes: list[str] = []
    parent = ""
    for segment in segments[:-1]:
        parent = f"{parent}{SEPARATOR}{segment}" if parent else segment
        prefixes.append(parent)
    return prefixes


def parse_index(segment: str) -> int | None:
    """Return *segment* as a list index when it is a plain decimal number."""
    if segment.isdigit() and segment.isascii():
        return int(segment)
    return None
