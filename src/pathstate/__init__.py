"""pathstate - Path-addressed reactive state store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pathstate")
except PackageNotFoundError:
    __version__ = "0+local"
from pathstate.config import StoreConfig
from pathstate.exceptions import (
    DestroyedStoreError,
    InvalidArgumentError,
    OperationCancelledError,
    PathStateError,
)
from pathstate.query import QueryClient
from pathstate.state.cancellation import CancellationToken
from pathstate.state.events import AsyncStatus, ChangeEvent
from pathstate.store import EventStore, create_store

__all__ = [
    "__version__",
    "AsyncStatus",
    "CancellationToken",
    "ChangeEvent",
    "DestroyedStoreError",
    "EventStore",
    "InvalidArgumentError",
    "OperationCancelledError",
    "PathStateError",
    "QueryClient",
    "StoreConfig",
    "create_store",
]
