"""Helpers for compact debug logging.

Stored values can be arbitrarily large (API payloads, lists of records).
This module renders a bounded summary of a value before it is emitted in
DEBUG logs, so tracing a busy store does not flood the log.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def summarize_for_log(
    value: Any,
    *,
    max_string: int = 200,
    max_items: int = 20,
    _depth: int = 0,
) -> Any:
    """Return a bounded copy of *value* suitable for debug logs."""
    if _depth > 8:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        if len(value) > max_items:
            return f"<mapping:{len(value)} keys>"
        return {
            str(k): summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        if len(value) > max_items:
            return f"<sequence:{len(value)} items>"
        return [summarize_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return f"<{type(value).__name__}>"
