from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from pathstate.exceptions import DestroyedStoreError
from pathstate.store import EventStore, create_store

OPERATIONS: dict[str, Callable[[EventStore], Any]] = {
    "get": lambda store: store.get("a"),
    "get_root": lambda store: store.get(),
    "set": lambda store: store.set("a", 1),
    "set_many": lambda store: store.set_many({"a": 1}),
    "batch": lambda store: store.batch(lambda: None),
    "subscribe": lambda store: store.subscribe("a", lambda *_a: None),
    "set_async": lambda store: store.set_async("a", lambda _token: None),
    "cancel": lambda store: store.cancel("a"),
    "snapshot": lambda store: store.snapshot(),
}


@pytest.mark.parametrize("operation", sorted(OPERATIONS))
def test_operations_raise_after_destroy(operation: str) -> None:
    store = create_store({"z": 0})
    store.destroy()

    with pytest.raises(DestroyedStoreError) as exc_info:
        OPERATIONS[operation](store)
    assert "destroyed store" in str(exc_info.value)


def test_transaction_context_raises_after_destroy() -> None:
    store = create_store()
    store.destroy()

    with pytest.raises(DestroyedStoreError) as exc_info:
        with store.transaction():
            pass  # pragma: no cover
    assert exc_info.value.operation == "transaction"


def test_destroy_is_idempotent() -> None:
    store = create_store({"a": 1})

    store.destroy()
    store.destroy()

    assert store.destroyed


def test_destroy_drops_pending_writes_without_flushing() -> None:
    store = create_store({"a": 0})
    seen: list[Any] = []
    store.subscribe("*", lambda event: seen.append(event.path))

    def body() -> None:
        store.set("a", 1)
        store.destroy()

    store.batch(body)

    assert seen == []


def test_destroy_clears_tree_and_subscriptions() -> None:
    initial = {"user": {"name": "Alice"}}
    store = create_store(initial)
    store.subscribe("user.name", lambda *_a: None)

    store.destroy()

    assert store._tree.root == {}  # type: ignore[attr-defined]
    assert store._registry.count() == 0  # type: ignore[attr-defined]
    assert initial == {"user": {"name": "Alice"}}


def test_context_manager_destroys_on_exit() -> None:
    with create_store({"a": 1}) as store:
        assert store.get("a") == 1

    assert store.destroyed
    assert repr(store) == "EventStore(destroyed)"
