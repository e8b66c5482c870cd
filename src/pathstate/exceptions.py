"""Custom exception hierarchy for pathstate."""

from __future__ import annotations


class PathStateError(Exception):
    """Base exception for all pathstate errors."""


class InvalidArgumentError(PathStateError, TypeError):
    """A path, handler, fetcher or ``set_many`` payload was malformed.

    Subclasses :class:`TypeError` so callers that guard store calls with
    ``except TypeError`` keep working.
    """

    def __init__(self, message: str, *, argument: str = "") -> None:
        self.argument = argument
        super().__init__(message)


class DestroyedStoreError(PathStateError):
    """An operation was invoked on a store after ``destroy()``."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation} on destroyed store")


class OperationCancelledError(PathStateError):
    """An asynchronous mutation was cancelled before it settled.

    ``superseded`` is ``True`` when a newer ``set_async`` call on the same
    path triggered the cancellation, ``False`` for an explicit ``cancel()``
    or a store teardown.
    """

    def __init__(
        self,
        message: str = "Request cancelled",
        *,
        path: str = "",
        superseded: bool = False,
    ) -> None:
        self.path = path
        self.superseded = superseded
        super().__init__(message)
