"""Path-addressed reactive store.

Usage::

    store = create_store({"count": 0, "user": {"name": "Alice"}})

    unsubscribe = store.subscribe("count", lambda value, event: print(value))
    store.subscribe("user.*", lambda event: print(event.path, event.value))
    store.subscribe("*", lambda event: print("changed", event.path))

    store.set("count", 1)
    with store.transaction():
        store.set("user.name", "Bob")
        store.set("user.age", 31)

    users = await store.set_async("users", fetch_users)

    unsubscribe()
    store.destroy()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, TypeVar

from pathstate._clone import clone_tree
from pathstate.config import StoreConfig
from pathstate.exceptions import DestroyedStoreError, InvalidArgumentError
from pathstate.state.paths import require_path
from pathstate.state.subscriptions import Handler, SubscriptionRegistry, Unsubscribe
from pathstate.state.tasks import AsyncTaskManager, Fetcher
from pathstate.state.transaction import TransactionBuffer
from pathstate.state.tree import PathStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def _normalize_entries(entries: Any) -> list[tuple[str, Any]]:
    """Turn a ``set_many`` payload into validated ``(path, value)`` pairs."""
    if isinstance(entries, Mapping):
        pairs = list(entries.items())
    elif isinstance(entries, (str, bytes, bytearray)) or not isinstance(entries, Iterable):
        raise InvalidArgumentError(
            f"set_many requires a mapping or (path, value) pairs, got {type(entries).__name__}",
            argument="entries",
        )
    else:
        pairs = []
        for entry in entries:
            if isinstance(entry, (str, bytes, bytearray)) or not isinstance(entry, Sequence) or len(entry) != 2:
                raise InvalidArgumentError(
                    f"set_many entries must be (path, value) pairs, got {entry!r}",
                    argument="entries",
                )
            pairs.append((entry[0], entry[1]))

    for path, _ in pairs:
        require_path(path, operation="set_many")
    return pairs


class EventStore:
    """In-process state tree with path subscriptions, batching and async writes.

    Single-threaded: every method except :meth:`set_async` is synchronous and
    delivers its notifications before returning.
    """

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        config: StoreConfig | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._destroyed = False
        self._tree = PathStore(initial, clone=self._config.clone_initial)
        self._registry = SubscriptionRegistry(self._config)
        self._buffer = TransactionBuffer(self._tree, self._registry)
        self._tasks = AsyncTaskManager(self._buffer, is_destroyed=lambda: self._destroyed)

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else f"subscriptions={self._registry.count()}"
        return f"EventStore({state})"

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> EventStore:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.destroy()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    def get(self, path: str | None = "", default: Any = None) -> Any:
        """Value at *path*; the whole tree when *path* is empty.

        Inside a transaction, a path with a pending write still reads the
        value it had before the transaction wrote it.
        """
        self._require_alive("get")
        if path is not None and not isinstance(path, str):
            raise InvalidArgumentError(
                f"get requires a string path, got {type(path).__name__}",
                argument="path",
            )
        return self._buffer.read(path, default)

    def set(self, path: str, value: T) -> T:
        """Write *value* at *path* and notify subscribers.  Returns *value*."""
        self._require_alive("set")
        require_path(path, operation="set")
        return self._buffer.write(path, value)

    def set_many(self, entries: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> None:
        """Apply several writes as one transaction.

        Accepts a mapping of path to value (applied in iteration order) or
        an iterable of ``(path, value)`` pairs.  The whole payload is
        validated before anything is written.
        """
        self._require_alive("set_many")
        pairs = _normalize_entries(entries)
        with self._buffer.transaction():
            for path, value in pairs:
                self._buffer.write(path, value)

    def batch(self, fn: Callable[[], T]) -> T:
        """Run *fn* in a transaction; notifications go out when the outermost one closes."""
        self._require_alive("batch")
        if not callable(fn):
            raise InvalidArgumentError("batch requires a callable", argument="fn")
        return self._buffer.batch(fn)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[EventStore]:
        """``with`` form of :meth:`batch`."""
        self._require_alive("transaction")
        with self._buffer.transaction():
            yield self

    def snapshot(self) -> dict[str, Any]:
        """Independent structural copy of the whole tree."""
        self._require_alive("snapshot")
        return clone_tree(self._tree.root)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, pattern: str, handler: Handler) -> Unsubscribe:
        """Subscribe *handler* to an exact path, ``"<path>.*"`` or ``"*"``.

        Exact-path handlers are called as ``handler(value, event)``;
        wildcard and global handlers as ``handler(event)``.
        """
        self._require_alive("subscribe")
        return self._registry.subscribe(pattern, handler)

    # ------------------------------------------------------------------
    # Async mutations
    # ------------------------------------------------------------------

    def set_async(self, path: str, fetcher: Fetcher) -> asyncio.Task[Any]:
        """Run *fetcher* and mirror its progress under *path*.

        ``<path>.status`` is ``"loading"`` and ``<path>.error`` is ``None``
        by the time this returns.  Await the returned task for the result;
        it raises :class:`~pathstate.exceptions.OperationCancelledError`
        when the operation is cancelled or superseded, and the fetcher's
        own exception when it fails.
        """
        self._require_alive("set_async")
        require_path(path, operation="set_async")
        return self._tasks.start(path, fetcher)

    def cancel(self, path: str) -> None:
        """Cancel the live operation on *path*, if any."""
        self._require_alive("cancel")
        require_path(path, operation="cancel")
        self._tasks.cancel(path)

    def is_pending(self, path: str) -> bool:
        self._require_alive("is_pending")
        return self._tasks.is_pending(path)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Cancel live operations, drop pending writes and subscriptions, clear the tree.

        Irreversible.  Calling it again is a no-op.
        """
        if self._destroyed:
            return
        self._destroyed = True
        _logger.debug(
            "Destroying store pending_ops=%d pending_writes=%d",
            len(self._tasks.pending_paths()),
            len(self._buffer.pending_paths()),
        )
        self._tasks.cancel_all()
        self._buffer.discard()
        self._registry.clear()
        self._tree.clear()

    def _require_alive(self, operation: str) -> None:
        if self._destroyed:
            raise DestroyedStoreError(operation)


def create_store(
    initial: Mapping[str, Any] | None = None,
    *,
    config: StoreConfig | None = None,
) -> EventStore:
    """Create an :class:`EventStore` seeded with a copy of *initial*."""
    return EventStore(initial, config=config)
