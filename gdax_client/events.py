"""
GDAX Client - Event Hub.

============================================================
PURPOSE
============================================================
Synchronous multi-subscriber notification channel.

GUARANTEES:
- Listeners run in subscription order on the emitting context
- A failing listener does not stop delivery to the others
- emit() never raises because of a listener
- Unsubscribing during emit() affects only later emissions

Single-owner: not guarded for concurrent mutation from threads.

============================================================
"""

import itertools
import logging
from typing import Callable, Generic, List, Optional, TypeVar


logger = logging.getLogger(__name__)


T = TypeVar("T")

Listener = Callable[[T], None]
ErrorHandler = Callable[[str, Exception], None]


class Subscription(Generic[T]):
    """Handle returned by EventHub.subscribe()."""

    _ids = itertools.count(1)

    def __init__(self, hub: "EventHub[T]", listener: Listener):
        self.id = next(self._ids)
        self.listener = listener
        self._hub = hub

    @property
    def active(self) -> bool:
        return self in self._hub

    def unsubscribe(self) -> bool:
        """Remove this subscription from its hub."""
        return self._hub.unsubscribe(self)

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, hub={self._hub.name!r})"


class EventHub(Generic[T]):
    """
    Typed publish/subscribe channel.

    Usage:
        hub = EventHub("ticker")
        sub = hub.subscribe(lambda msg: print(msg["price"]))
        hub.emit({"type": "ticker", "price": "100.00"})
        sub.unsubscribe()
    """

    def __init__(self, name: str = "", on_error: Optional[ErrorHandler] = None):
        """
        Initialize hub.

        Args:
            name: Channel name, used in logs and error reports
            on_error: Receives (name, exception) when a listener raises.
                Failures are only logged when omitted.
        """
        self.name = name
        self._on_error = on_error
        self._subscriptions: List[Subscription[T]] = []

    def subscribe(self, listener: Listener) -> Subscription[T]:
        """Register a listener. The same callable may be registered twice."""
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> bool:
        """
        Remove a subscription.

        Returns:
            False if it was not registered
        """
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        self._subscriptions = []

    def emit(self, value: T) -> None:
        """Deliver value to every listener registered when the call began."""
        for subscription in list(self._subscriptions):
            try:
                subscription.listener(value)
            except Exception as e:
                self._report(e)

    def _report(self, error: Exception) -> None:
        if self._on_error is None:
            logger.error(f"Listener error on '{self.name}': {error}", exc_info=error)
            return
        try:
            self._on_error(self.name, error)
        except Exception as handler_error:
            logger.error(
                f"Error handler failed on '{self.name}': {handler_error}",
                exc_info=handler_error,
            )

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, subscription: object) -> bool:
        return subscription in self._subscriptions

    def __repr__(self) -> str:
        return f"EventHub(name={self.name!r}, listeners={len(self)})"
