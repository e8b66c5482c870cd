from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pathstate.exceptions import OperationCancelledError
from pathstate.query import QueryClient
from pathstate.state.cancellation import CancellationToken
from pathstate.store import create_store


@pytest.mark.asyncio
async def test_query_round_trip() -> None:
    store = create_store()
    queries = QueryClient(store)
    statuses: list[str] = []
    data: list[Any] = []
    queries.subscribe_to_status("users", lambda value, _e: statuses.append(value))
    queries.subscribe("users", lambda value, _e: data.append(value))

    async def fetch(_token: CancellationToken) -> list[str]:
        return ["alice", "bob"]

    result = await queries.query("users", fetch)

    assert result == ["alice", "bob"]
    assert queries.get_data("users") == ["alice", "bob"]
    assert queries.get_status("users") == "success"
    assert queries.get_error("users") is None
    assert statuses == ["loading", "success"]
    assert data == [["alice", "bob"]]
    assert store.get("query.users.status") == "success"


@pytest.mark.asyncio
async def test_query_error_is_observable() -> None:
    store = create_store()
    queries = QueryClient(store, namespace="api")
    errors: list[Any] = []
    queries.subscribe_to_error("orders", lambda value, _e: errors.append(value))

    async def fetch(_token: CancellationToken) -> Any:
        raise RuntimeError("timeout")

    with pytest.raises(RuntimeError):
        await queries.query("orders", fetch)

    assert queries.path("orders") == "api.orders"
    assert queries.get_status("orders") == "error"
    assert errors == [None, "timeout"]


@pytest.mark.asyncio
async def test_query_cancel() -> None:
    store = create_store()
    queries = QueryClient(store)

    async def slow(token: CancellationToken) -> Any:
        await token.wait()
        token.raise_if_cancelled()

    task = queries.query("report", slow)
    await asyncio.sleep(0)
    queries.cancel("report")

    with pytest.raises(OperationCancelledError):
        await task
    assert queries.get_status("report") == "cancelled"


@pytest.mark.asyncio
async def test_invalidate_resets_in_one_write_set() -> None:
    store = create_store()
    queries = QueryClient(store)
    await queries.query("users", lambda _token: ["alice"])
    seen: list[tuple[str, Any]] = []
    store.subscribe("query.users.*", lambda event: seen.append((event.path, event.value)))

    queries.invalidate("users")

    assert queries.get_data("users") is None
    assert queries.get_status("users") == "idle"
    assert queries.get_error("users") is None
    assert seen == [
        ("query.users.data", None),
        ("query.users.status", "idle"),
        ("query.users.error", None),
    ]
