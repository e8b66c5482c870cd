from __future__ import annotations

from typing import Any

import pytest

from pathstate.exceptions import InvalidArgumentError
from pathstate.state.events import ChangeEvent
from pathstate.store import create_store


def test_exact_subscription_receives_value_and_event() -> None:
    store = create_store({"count": 0})
    calls: list[tuple[Any, ChangeEvent]] = []
    store.subscribe("count", lambda value, event: calls.append((value, event)))

    store.set("count", 1)

    assert len(calls) == 1
    value, event = calls[0]
    assert value == 1
    assert event.path == "count"
    assert event.value == 1
    assert event.old_value == 0


def test_exact_subscription_ignores_other_paths() -> None:
    store = create_store()
    calls: list[Any] = []
    store.subscribe("count", lambda value, _event: calls.append(value))

    store.set("other", 1)
    store.set("count.nested", 1)

    assert calls == []


def test_wildcard_receives_event_only() -> None:
    store = create_store({"user": {"name": "Alice", "age": 30}})
    events: list[ChangeEvent] = []
    store.subscribe("user.*", events.append)

    store.set("user.name", "Bob")
    store.set("user.age", 31)
    store.set("other.x", 1)

    assert [(e.path, e.value, e.old_value) for e in events] == [
        ("user.name", "Bob", "Alice"),
        ("user.age", 31, 30),
    ]


def test_wildcard_matches_every_ancestor_shortest_first() -> None:
    store = create_store()
    order: list[str] = []
    store.subscribe("a.b.*", lambda _e: order.append("a.b.*"))
    store.subscribe("a.*", lambda _e: order.append("a.*"))

    store.set("a.b.c", 1)

    assert order == ["a.*", "a.b.*"]


def test_wildcard_does_not_fire_for_its_own_prefix() -> None:
    store = create_store()
    events: list[ChangeEvent] = []
    store.subscribe("user.*", events.append)

    store.set("user", {"name": "Bob"})

    assert events == []


def test_global_subscription_fires_everywhere() -> None:
    store = create_store()
    paths: list[str] = []
    store.subscribe("*", lambda event: paths.append(event.path))

    store.set("a", 1)
    store.set("b.c.d", 2)

    assert paths == ["a", "b.c.d"]


def test_dispatch_order_exact_then_wildcard_then_global() -> None:
    store = create_store()
    order: list[str] = []
    store.subscribe("*", lambda _e: order.append("global"))
    store.subscribe("user.*", lambda _e: order.append("wildcard"))
    store.subscribe("user.name", lambda _v, _e: order.append("exact"))

    store.set("user.name", "Bob")

    assert order == ["exact", "wildcard", "global"]


def test_handlers_within_pattern_run_in_subscription_order() -> None:
    store = create_store()
    order: list[int] = []
    for index in range(3):
        store.subscribe("x", lambda _v, _e, index=index: order.append(index))

    store.set("x", 1)

    assert order == [0, 1, 2]


def test_unsubscribe_stops_delivery_and_is_idempotent() -> None:
    store = create_store()
    seen: list[Any] = []
    unsubscribe = store.subscribe("x", lambda value, _e: seen.append(value))

    store.set("x", 1)
    unsubscribe()
    unsubscribe()
    store.set("x", 2)

    assert seen == [1]
    assert store.get("x") == 2


def test_stale_unsubscribe_leaves_new_registration_alone() -> None:
    store = create_store()
    seen: list[str] = []

    def handler(event: ChangeEvent) -> None:
        seen.append(event.path)

    first = store.subscribe("*", handler)
    first()
    second = store.subscribe("*", handler)
    first()
    store.set("x", 1)

    assert seen == ["x"]

    second()
    store.set("y", 2)
    assert seen == ["x"]


@pytest.mark.parametrize(
    ("pattern", "handler"),
    [("", lambda *_a: None), (None, lambda *_a: None), ("x", None), ("x", "not callable")],
)
def test_subscribe_validates_arguments(pattern: Any, handler: Any) -> None:
    store = create_store()

    with pytest.raises(InvalidArgumentError):
        store.subscribe(pattern, handler)


def test_handler_exception_propagates_to_setter() -> None:
    store = create_store()

    def boom(_value: Any, _event: ChangeEvent) -> None:
        raise RuntimeError("handler failed")

    store.subscribe("x", boom)

    with pytest.raises(RuntimeError, match="handler failed"):
        store.set("x", 1)
    # The write itself was applied before dispatch.
    assert store.get("x") == 1


def test_handler_subscribed_during_dispatch_misses_triggering_event() -> None:
    store = create_store()
    late: list[Any] = []

    def subscribe_more(_value: Any, _event: ChangeEvent) -> None:
        store.subscribe("x", lambda value, _e: late.append(value))

    unsubscribe = store.subscribe("x", subscribe_more)
    store.set("x", 1)
    unsubscribe()
    assert late == []

    store.set("x", 2)
    assert late == [2]


def test_handler_removed_during_dispatch_still_sees_in_flight_event() -> None:
    store = create_store()
    seen: list[str] = []
    unsubscribe_second: list[Any] = []

    def first(_value: Any, _event: ChangeEvent) -> None:
        seen.append("first")
        unsubscribe_second[0]()

    store.subscribe("x", first)
    unsubscribe_second.append(store.subscribe("x", lambda _v, _e: seen.append("second")))

    store.set("x", 1)
    store.set("x", 2)

    assert seen == ["first", "second", "first"]


def test_reentrant_set_dispatches_synchronously() -> None:
    store = create_store({"celsius": 0})
    order: list[str] = []
    store.subscribe("celsius", lambda value, _e: store.set("fahrenheit", value * 9 / 5 + 32))
    store.subscribe("fahrenheit", lambda _v, _e: order.append("fahrenheit"))
    store.subscribe("*", lambda event: order.append(f"global:{event.path}"))

    store.set("celsius", 100)

    assert store.get("fahrenheit") == 212
    # The nested write is fully dispatched before the outer one continues.
    assert order == ["fahrenheit", "global:fahrenheit", "global:celsius"]
