"""Write-coalescing transaction buffer.

Two states: Idle (``depth == 0``) and InTransaction(depth).  Outside a
transaction a write is applied and dispatched immediately.  Inside one:

* the write goes straight into the tree, so reads of *other* paths see it;
* a read of a path with a pending write returns the value it had before the
  transaction touched it;
* the first write to a path captures ``old_value`` as it was before the
  transaction began, even when an ancestor or descendant was written first;
* leaving the outermost level dispatches once per pending path, in the order
  each path was first written, with the value the tree holds at that point.

Containers above a written path are copied on first touch, so the objects
that made up the tree when the transaction began stay intact and old values
can be read back out of them.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from pathstate.state.paths import ancestor_prefixes, split_path
from pathstate.state.subscriptions import SubscriptionRegistry
from pathstate.state.tree import PathStore, lookup

T = TypeVar("T")

_MISSING: Any = object()


@dataclass(slots=True)
class PendingWrite:
    """A buffered path and the value it held before the transaction."""

    path: str
    old_value: Any = None
    existed: bool = True


class TransactionBuffer:
    """Defers and deduplicates dispatch for writes made inside ``batch``."""

    def __init__(self, tree: PathStore, registry: SubscriptionRegistry) -> None:
        self._tree = tree
        self._registry = registry
        self._depth = 0
        self._pending: dict[str, PendingWrite] = {}
        # pre-transaction value of every path whose node this transaction replaced
        self._originals: dict[str, Any] = {}
        # containers copied by this transaction, safe to mutate in place
        self._owned: dict[int, Any] = {}

    def pending_paths(self) -> list[str]:
        return list(self._pending)

    def read(self, path: str | None, default: Any = None) -> Any:
        """Read through the shadow of buffered writes."""
        if path and self._pending:
            pending = self._pending.get(path)
            if pending is not None:
                return pending.old_value if pending.existed else default
        return self._tree.get(path, default)

    def write(self, path: str, value: Any) -> Any:
        if not self._depth:
            _, old_value = self._tree.set(path, value)
            self._registry.dispatch(path, value, old_value)
            return value

        segments = split_path(path)
        for prefix in [*ancestor_prefixes(segments), path]:
            if prefix not in self._originals:
                self._originals[prefix] = self._original(prefix)
        self._tree.detach_parents(path, self._owned)
        self._tree.set(path, value)

        if path not in self._pending:
            previous = self._originals[path]
            if previous is _MISSING:
                self._pending[path] = PendingWrite(path, None, existed=False)
            else:
                self._pending[path] = PendingWrite(path, previous)
        return value

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """Open one (possibly nested) transaction level."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            # Writes already applied are flushed even when the body raised.
            if not self._depth:
                self._flush()

    def batch(self, fn: Callable[[], T]) -> T:
        with self.transaction():
            return fn()

    def discard(self) -> None:
        """Drop pending writes without dispatching them."""
        self._pending.clear()
        self._originals.clear()
        self._owned.clear()

    def _original(self, path: str) -> Any:
        """Value *path* held when the transaction began, or ``_MISSING``."""
        segments = split_path(path)
        for depth, prefix in enumerate(ancestor_prefixes(segments), start=1):
            if prefix in self._originals:
                return lookup(self._originals[prefix], segments[depth:], _MISSING)
        return self._tree.get(path, _MISSING)

    def _flush(self) -> None:
        self._originals.clear()
        self._owned.clear()
        if not self._pending:
            return
        # Detach first: writes made by handlers during the flush run Idle.
        pending, self._pending = self._pending, {}
        final = {path: self._tree.get(path) for path in pending}
        for write in pending.values():
            self._registry.dispatch(write.path, final[write.path], write.old_value)
