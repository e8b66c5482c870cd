"""Cooperative cancellation tokens for asynchronous mutations.

A token only records that cancellation was requested; the running fetcher
has to observe it (``raise_if_cancelled()``, ``await wait()`` or a
registered callback) and stop on its own.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from pathstate.exceptions import OperationCancelledError

#: Cancellation reasons recorded on a token.
REASON_CANCELLED = "cancelled"
REASON_SUPERSEDED = "superseded"
REASON_DESTROYED = "destroyed"


class CancellationToken:
    """Signals that an in-flight operation should treat itself as aborted.

    Tokens compose: a token created with ``parent=`` (or via
    :meth:`child`) is cancelled whenever its parent is.
    """

    __slots__ = ("_cancelled", "_reason", "_callbacks", "_event", "path")

    def __init__(self, *, path: str = "", parent: CancellationToken | None = None) -> None:
        self.path = path
        self._cancelled = False
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._event: asyncio.Event | None = None
        if parent is not None:
            parent.add_callback(lambda: self.cancel(parent.reason or REASON_CANCELLED))

    def __repr__(self) -> str:
        state = f"cancelled reason={self._reason!r}" if self._cancelled else "active"
        return f"CancellationToken(path={self.path!r}, {state})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = REASON_CANCELLED) -> bool:
        """Mark the token cancelled.  Returns ``False`` if it already was."""
        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        if self._event is not None:
            self._event.set()
        return True

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* on cancellation (immediately if already cancelled).

        Returns a closure that unregisters the callback.
        """
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(path=self.path, superseded=self._reason == REASON_SUPERSEDED)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def child(self) -> CancellationToken:
        return CancellationToken(path=self.path, parent=self)
