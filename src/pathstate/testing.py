"""Event-sequence test harness.

Wraps a store, records every change through a ``"*"`` subscription and
offers assertion helpers over :meth:`EventStore.get`::

    t = EventTest({"count": 0})
    t.trigger("count", 1).trigger("count", 2)
    t.assert_path("count", 2).assert_event_fired("count", 2)
    t.assert_type("count", "number")

Type names are language neutral: ``"string"``, ``"number"``, ``"boolean"``,
``"null"``, ``"object"`` and ``"array"``.  Every ``assert_type``,
``assert_shape`` and ``assert_array_of`` call is recorded and can be read
back with :meth:`EventTest.get_type_assertions`, e.g. to generate type
declarations for the state tree.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pathstate.config import StoreConfig
from pathstate.state.events import ChangeEvent
from pathstate.store import EventStore

TYPE_NAMES = frozenset({"string", "number", "boolean", "null", "object", "array"})


def type_name_of(value: Any) -> str | None:
    """Neutral type name of *value*, or ``None`` for unsupported kinds."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return None


@dataclass(frozen=True)
class EventRecord:
    """One change observed by the harness."""

    path: str
    value: Any
    old_value: Any
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class TypeAssertion:
    """A recorded ``assert_type`` / ``assert_shape`` / ``assert_array_of`` call."""

    kind: str
    path: str
    expected: Any


def _check_shape(path: str, actual: Any, shape: Mapping[str, Any]) -> None:
    if not isinstance(actual, Mapping):
        raise AssertionError(f"Expected {path} to be an object, got {type_name_of(actual)}")
    for key, expected in shape.items():
        if key not in actual:
            raise AssertionError(f"Expected {path}.{key} to exist")
        value = actual[key]
        if isinstance(expected, Mapping):
            _check_shape(f"{path}.{key}", value, expected)
            continue
        actual_type = type_name_of(value)
        if actual_type != expected:
            raise AssertionError(f"Expected {path}.{key} to be {expected}, got {actual_type}")


class EventTest:
    """Store wrapper that logs every change and asserts over state."""

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        config: StoreConfig | None = None,
    ) -> None:
        self.store = EventStore(initial, config=config)
        self._events: list[EventRecord] = []
        self._type_assertions: list[TypeAssertion] = []
        self.store.subscribe("*", self._record)

    def _record(self, event: ChangeEvent) -> None:
        self._events.append(EventRecord(event.path, event.value, event.old_value))

    def trigger(self, path: str, value: Any) -> EventTest:
        self.store.set(path, value)
        return self

    def assert_path(self, path: str, expected: Any) -> EventTest:
        actual = self.store.get(path)
        if actual != expected:
            raise AssertionError(f"Expected {path} to be {expected!r}, got {actual!r}")
        return self

    def assert_event_fired(self, path: str, times: int | None = None) -> EventTest:
        """Assert *path* was notified; exactly *times* times when given."""
        count = sum(1 for record in self._events if record.path == path)
        if times is None:
            if not count:
                raise AssertionError(f"Expected {path} to fire, it never did")
        elif count != times:
            raise AssertionError(f"Expected {path} to fire {times} times, fired {count}")
        return self

    def assert_type(self, path: str, expected: str) -> EventTest:
        if expected not in TYPE_NAMES:
            raise ValueError(f"Unknown type name {expected!r}")
        actual = type_name_of(self.store.get(path))
        if actual != expected:
            raise AssertionError(f"Expected {path} to be {expected}, got {actual}")
        self._type_assertions.append(TypeAssertion("type", path, expected))
        return self

    def assert_shape(self, path: str, shape: Mapping[str, Any]) -> EventTest:
        """Assert *path* holds an object whose keys have the given type names."""
        _check_shape(path, self.store.get(path), shape)
        self._type_assertions.append(TypeAssertion("shape", path, dict(shape)))
        return self

    def assert_array_of(self, path: str, shape: Mapping[str, Any]) -> EventTest:
        """Assert *path* holds an array whose items all match *shape*."""
        actual = self.store.get(path)
        if not isinstance(actual, (list, tuple)):
            raise AssertionError(f"Expected {path} to be an array, got {type_name_of(actual)}")
        for index, item in enumerate(actual):
            _check_shape(f"{path}.{index}", item, shape)
        self._type_assertions.append(TypeAssertion("array", path, dict(shape)))
        return self

    def get_event_log(self) -> list[EventRecord]:
        return list(self._events)

    def get_type_assertions(self) -> list[TypeAssertion]:
        return list(self._type_assertions)


def create_event_test(
    initial: Mapping[str, Any] | None = None,
    *,
    config: StoreConfig | None = None,
) -> EventTest:
    return EventTest(initial, config=config)
