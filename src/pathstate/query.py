"""Thin query layer over :meth:`EventStore.set_async`.

Every query lives under ``"<namespace>.<key>"`` and exposes the usual
``data`` / ``status`` / ``error`` triple::

    queries = QueryClient(store)
    queries.subscribe_to_status("users", lambda status, _event: render(status))
    users = await queries.query("users", fetch_users)
"""

from __future__ import annotations

import asyncio
from typing import Any

from pathstate.state.events import AsyncStatus
from pathstate.state.paths import require_path
from pathstate.state.subscriptions import Handler, Unsubscribe
from pathstate.state.tasks import Fetcher
from pathstate.store import EventStore


class QueryClient:
    """Standard query patterns on top of a store."""

    def __init__(self, store: EventStore, *, namespace: str = "query") -> None:
        self._store = store
        self._namespace = require_path(namespace, operation="QueryClient")

    def path(self, key: str) -> str:
        """Store path backing the query *key*."""
        return f"{self._namespace}.{require_path(key, operation='query')}"

    def query(self, key: str, fetcher: Fetcher) -> asyncio.Task[Any]:
        """Run *fetcher* for *key*; superseding any query in flight for it."""
        return self._store.set_async(self.path(key), fetcher)

    def subscribe(self, key: str, handler: Handler) -> Unsubscribe:
        return self._store.subscribe(f"{self.path(key)}.data", handler)

    def subscribe_to_status(self, key: str, handler: Handler) -> Unsubscribe:
        return self._store.subscribe(f"{self.path(key)}.status", handler)

    def subscribe_to_error(self, key: str, handler: Handler) -> Unsubscribe:
        return self._store.subscribe(f"{self.path(key)}.error", handler)

    def get_data(self, key: str) -> Any:
        return self._store.get(f"{self.path(key)}.data")

    def get_status(self, key: str) -> str | None:
        return self._store.get(f"{self.path(key)}.status")

    def get_error(self, key: str) -> str | None:
        return self._store.get(f"{self.path(key)}.error")

    def cancel(self, key: str) -> None:
        self._store.cancel(self.path(key))

    def invalidate(self, key: str) -> None:
        """Reset *key* to idle with no data and no error, as one write-set."""
        base = self.path(key)
        self._store.set_many(
            {
                f"{base}.data": None,
                f"{base}.status": AsyncStatus.IDLE.value,
                f"{base}.error": None,
            }
        )
