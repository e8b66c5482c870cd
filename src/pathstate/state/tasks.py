"""Cancellable asynchronous mutations, one live operation per path.

``set_async(path, fetcher)`` mirrors the life of the fetcher into three
sibling keys under *path*:

=================  ==========================================
phase              coalesced writes
=================  ==========================================
start              ``status="loading"``, ``error=None``
success            ``data=<result>``, ``status="success"``
failure            ``status="error"``, ``error=<message>``
cancellation       ``status="cancelled"``
=================  ==========================================

Each multi-key phase is one transaction, so a ``"<path>.*"`` subscriber sees
one notification per key per phase.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, NoReturn

from pathstate.exceptions import DestroyedStoreError, InvalidArgumentError, OperationCancelledError
from pathstate.state.cancellation import (
    REASON_CANCELLED,
    REASON_DESTROYED,
    REASON_SUPERSEDED,
    CancellationToken,
)
from pathstate.state.events import AsyncStatus
from pathstate.state.transaction import TransactionBuffer

_logger = logging.getLogger(__name__)

#: Called with the operation token; may return a value or an awaitable.
Fetcher = Callable[[CancellationToken], Any]


@dataclass(slots=True)
class AsyncOperation:
    """The live operation registered for a path."""

    path: str
    token: CancellationToken
    started_at: float = field(default_factory=time.monotonic)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class AsyncTaskManager:
    """Tracks in-flight ``set_async`` operations and writes their status."""

    def __init__(self, buffer: TransactionBuffer, *, is_destroyed: Callable[[], bool]) -> None:
        self._buffer = buffer
        self._is_destroyed = is_destroyed
        self._operations: dict[str, AsyncOperation] = {}

    def is_pending(self, path: str) -> bool:
        return path in self._operations

    def pending_paths(self) -> list[str]:
        return list(self._operations)

    def start(self, path: str, fetcher: Fetcher) -> asyncio.Task[Any]:
        """Begin an operation on *path* and return the task that settles it.

        Superseding, token registration and the loading-phase writes happen
        before this returns; only the fetcher runs inside the task.  Must be
        called with a running event loop.
        """
        if not callable(fetcher):
            raise InvalidArgumentError(
                "set_async(path, fetcher) requires a callable fetcher",
                argument="fetcher",
            )
        loop = asyncio.get_running_loop()

        previous = self._operations.get(path)
        if previous is not None:
            _logger.debug("set_async superseding in-flight operation path=%s", path)
            previous.token.cancel(REASON_SUPERSEDED)

        token = CancellationToken(path=path)
        operation = AsyncOperation(path=path, token=token)
        self._operations[path] = operation
        _logger.debug("set_async started path=%s", path)

        try:
            self._write_phase(path, status=AsyncStatus.LOADING.value, error=None)
        except BaseException:
            token.cancel(REASON_CANCELLED)
            self._forget(operation)
            raise

        task = loop.create_task(self._run(operation, fetcher), name=f"pathstate.set_async:{path}")
        task.add_done_callback(lambda _task: self._on_task_done(operation))
        return task

    async def _run(self, operation: AsyncOperation, fetcher: Fetcher) -> Any:
        path, token = operation.path, operation.token
        try:
            result = fetcher(token)
            if inspect.isawaitable(result):
                result = await result

            if self._is_destroyed():
                raise DestroyedStoreError("set_async")

            self._write_phase(path, data=result, status=AsyncStatus.SUCCESS.value)
            self._log_settled(operation, AsyncStatus.SUCCESS)
            return result
        except DestroyedStoreError:
            raise
        except OperationCancelledError as exc:
            self._settle_cancelled(operation, exc)
        except asyncio.CancelledError as exc:
            if not token.cancelled:
                # The task itself was cancelled: keep asyncio semantics.
                token.cancel(REASON_CANCELLED)
                if not self._is_destroyed():
                    self._buffer.write(f"{path}.status", AsyncStatus.CANCELLED.value)
                self._log_settled(operation, AsyncStatus.CANCELLED)
                raise
            self._settle_cancelled(operation, exc)
        except Exception as exc:
            if self._is_destroyed():
                raise DestroyedStoreError("set_async") from exc
            self._write_phase(path, status=AsyncStatus.ERROR.value, error=_error_message(exc))
            self._log_settled(operation, AsyncStatus.ERROR)
            raise
        finally:
            self._forget(operation)

    def _on_task_done(self, operation: AsyncOperation) -> None:
        # A task cancelled before its first step never enters _run.
        if not self._forget(operation):
            return
        operation.token.cancel(REASON_CANCELLED)
        if not self._is_destroyed():
            self._buffer.write(f"{operation.path}.status", AsyncStatus.CANCELLED.value)

    def _forget(self, operation: AsyncOperation) -> bool:
        current = self._operations.get(operation.path)
        if current is not None and current.token is operation.token:
            del self._operations[operation.path]
            return True
        return False

    def cancel(self, path: str) -> None:
        operation = self._operations.pop(path, None)
        if operation is None:
            return
        _logger.debug("set_async cancelled explicitly path=%s", path)
        operation.token.cancel(REASON_CANCELLED)
        self._buffer.write(f"{path}.status", AsyncStatus.CANCELLED.value)

    def cancel_all(self) -> None:
        """Cancel every live token without touching the state tree."""
        operations, self._operations = self._operations, {}
        for operation in operations.values():
            operation.token.cancel(REASON_DESTROYED)

    def _settle_cancelled(self, operation: AsyncOperation, exc: BaseException) -> NoReturn:
        if self._is_destroyed():
            raise DestroyedStoreError("set_async") from exc
        self._buffer.write(f"{operation.path}.status", AsyncStatus.CANCELLED.value)
        self._log_settled(operation, AsyncStatus.CANCELLED)
        raise OperationCancelledError(
            path=operation.path,
            superseded=operation.token.reason == REASON_SUPERSEDED,
        ) from exc

    def _write_phase(self, path: str, **fields: Any) -> None:
        with self._buffer.transaction():
            for key, value in fields.items():
                self._buffer.write(f"{path}.{key}", value)

    @staticmethod
    def _log_settled(operation: AsyncOperation, status: AsyncStatus) -> None:
        _logger.debug(
            "set_async settled path=%s status=%s after %.3fs",
            operation.path,
            status,
            time.monotonic() - operation.started_at,
        )
