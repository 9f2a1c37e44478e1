"""Latest-value async pub/sub stream."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger("token_wallet.core.subject")

T = TypeVar("T")

Callback = Callable[[T], Awaitable[None]]


class Subscription:
    """Returned by :meth:`BehaviorSubject.subscribe`; call ``unsubscribe()`` to stop."""

    def __init__(self, subject: BehaviorSubject, callback: Callback) -> None:
        self._subject = subject
        self._callback = callback
        self.closed = False

    def unsubscribe(self) -> None:
        if not self.closed:
            self._subject._remove(self._callback)
            self.closed = True


class BehaviorSubject(Generic[T]):
    """Holds a current value and pushes every new value to all subscribers.

    New subscribers receive the current value immediately. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callback] = []

    @property
    def value(self) -> T:
        return self._value

    def get_value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, callback: Callback) -> Subscription:
        self._subscribers.append(callback)
        await self._deliver(callback, self._value)
        return Subscription(self, callback)

    async def next(self, value: T) -> None:
        """Replace the current value and notify every subscriber."""
        self._value = value
        # Copy so callbacks may unsubscribe while we iterate
        for callback in list(self._subscribers):
            await self._deliver(callback, value)

    def _remove(self, callback: Callback) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    async def _deliver(self, callback: Callback, value: T) -> None:
        try:
            await callback(value)
        except Exception as e:
            logger.error(f"Subscriber callback error: {e}")
