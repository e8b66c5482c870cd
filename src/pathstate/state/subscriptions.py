"""Listener registry keyed by exact path, ancestor wildcard and global pattern.

Dispatch order for a write at ``a.b.c``:

1. handlers subscribed to ``"a.b.c"``, called as ``handler(value, event)``;
2. handlers subscribed to ``"a.*"`` then ``"a.b.*"``, called as ``handler(event)``;
3. handlers subscribed to ``"*"``, called as ``handler(event)``.

Within one pattern, handlers run in subscription order.  Each pattern's
handler set is snapshotted when its step starts: a handler subscribed during
a dispatch does not see the event being dispatched, and a handler removed
during a dispatch still sees it if it was registered when the step began.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pathstate._logfmt import summarize_for_log
from pathstate.config import StoreConfig
from pathstate.exceptions import InvalidArgumentError
from pathstate.state.events import ChangeEvent
from pathstate.state.paths import WILDCARD, WILDCARD_SUFFIX, ancestor_prefixes, split_path

_logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
Unsubscribe = Callable[[], None]


class SubscriptionRegistry:
    """Pattern → ordered handler set, plus match-and-dispatch."""

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        # insertion-ordered handler -> registration token
        self._listeners: dict[str, dict[Handler, object]] = {}

    def subscribe(self, pattern: str, handler: Handler) -> Unsubscribe:
        """Register *handler* under *pattern* and return its unsubscribe closure."""
        if not pattern or not isinstance(pattern, str) or not callable(handler):
            raise InvalidArgumentError("subscribe requires path and handler", argument="pattern")

        # Subscribing an already registered handler shares its registration.
        token = self._listeners.setdefault(pattern, {}).setdefault(handler, object())

        def unsubscribe() -> None:
            handlers = self._listeners.get(pattern)
            if handlers is None or handlers.get(handler) is not token:
                return
            del handlers[handler]
            if not handlers:
                del self._listeners[pattern]

        return unsubscribe

    def count(self, pattern: str | None = None) -> int:
        """Number of handlers for *pattern*, or across all patterns."""
        if pattern is not None:
            return len(self._listeners.get(pattern, ()))
        return sum(len(handlers) for handlers in self._listeners.values())

    def clear(self) -> None:
        self._listeners.clear()

    def dispatch(self, path: str, value: Any, old_value: Any) -> None:
        """Notify every handler whose pattern matches *path*."""
        if not self._listeners:
            return

        event = ChangeEvent(path=path, value=value, old_value=old_value)
        if self._config.trace_dispatch:
            _logger.debug(
                "dispatch path=%s value=%s old_value=%s",
                path,
                summarize_for_log(
                    value, max_string=self._config.log_max_string, max_items=self._config.log_max_items
                ),
                summarize_for_log(
                    old_value, max_string=self._config.log_max_string, max_items=self._config.log_max_items
                ),
            )

        for handler in self._snapshot(path):
            self._call(handler, event, value, event)

        for prefix in ancestor_prefixes(split_path(path)):
            for handler in self._snapshot(prefix + WILDCARD_SUFFIX):
                self._call(handler, event, event)

        for handler in self._snapshot(WILDCARD):
            self._call(handler, event, event)

    def _snapshot(self, pattern: str) -> tuple[Handler, ...]:
        handlers = self._listeners.get(pattern)
        return tuple(handlers) if handlers else ()

    @staticmethod
    def _call(handler: Handler, event: ChangeEvent, *args: Any) -> None:
        try:
            handler(*args)
        except Exception:
            _logger.debug("Handler %r failed for path=%s", handler, event.path, exc_info=True)
            raise
