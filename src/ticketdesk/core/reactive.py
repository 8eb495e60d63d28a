"""
Push-based live values for the store's read contract.

Manifesto:
    UI collaborators need to react to state changes without polling and
    without importing the store's internals. Every selector the store exposes
    is a :class:`Stream` with two guarantees:

    - **Replay-latest:** a new subscriber is called immediately with the
      current value.
    - **Distinct-until-changed:** an emission equal to the current value is
      suppressed, so observers only run on real changes.

    Delivery is synchronous. When :meth:`LiveValue.set` returns, every derived
    stream has already recomputed, so readers never see a stale projection
    next to fresh state.

Usage::

    state = LiveValue(0)
    doubled = state.map(lambda v: v * 2)
    sub = doubled.subscribe(print)   # prints 0
    state.set(2)                     # prints 4
    state.set(2)                     # suppressed
    sub.unsubscribe()

Tags:
    ticketdesk, reactive, observer, behavior-subject
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ticketdesk.core.logging import get_logger

T = TypeVar("T")
U = TypeVar("U")

Observer = Callable[[Any], None]

logger = get_logger(__name__)


class Subscription:
    """Handle returned by :meth:`Stream.subscribe`."""

    def __init__(self, stream: Stream[Any], sub_id: int):
        self._stream = stream
        self._id = sub_id
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if not self._closed:
            self._stream._observers.pop(self._id, None)
            self._closed = True


class Stream(Generic[T]):
    """Read-only live value."""

    def __init__(self, initial: T, *, name: str | None = None):
        self._value = initial
        self._name = name
        self._observers: dict[int, Observer] = {}
        self._ids = itertools.count(1)
        self._upstream: list[Subscription] = []
        self._closed = False

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    def subscribe(self, observer: Callable[[T], None]) -> Subscription:
        """Register *observer* and call it with the current value right away."""
        sub_id = next(self._ids)
        self._observers[sub_id] = observer
        subscription = Subscription(self, sub_id)
        self._notify_one(sub_id, observer, self._value)
        return subscription

    def map(self, fn: Callable[[T], U], *, name: str | None = None) -> Stream[U]:
        """Derived stream holding ``fn(value)``."""
        derived: Stream[U] = Stream(fn(self._value), name=name)
        derived._upstream.append(
            self.subscribe(lambda value: derived._emit(fn(value)))
        )
        return derived

    def close(self) -> None:
        """Drop all observers and detach from upstream streams."""
        for sub in self._upstream:
            sub.unsubscribe()
        self._upstream.clear()
        self._observers.clear()
        self._closed = True

    def _emit(self, value: T) -> bool:
        if self._closed:
            return False
        if value is self._value or value == self._value:
            return False
        self._value = value
        for sub_id, observer in list(self._observers.items()):
            self._notify_one(sub_id, observer, value)
        return True

    def _notify_one(self, sub_id: int, observer: Observer, value: Any) -> None:
        try:
            observer(value)
        except Exception as e:
            logger.warning(
                "stream_observer_error",
                stream=self._name,
                subscription_id=sub_id,
                error=str(e),
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, subscribers={len(self._observers)})"


class LiveValue(Stream[T]):
    """Writable stream: the single source a set of derived streams hang off."""

    def set(self, value: T) -> bool:
        """Publish *value*. Returns False when suppressed as unchanged."""
        return self._emit(value)

    def update(self, fn: Callable[[T], T]) -> bool:
        """Publish ``fn(current)``."""
        return self._emit(fn(self._value))


__all__ = ["Stream", "LiveValue", "Subscription"]
