"""Small publish/subscribe channel for outbound engine signals."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Fans a payload out to subscribers in registration order.

    Subscriber failures are logged and never reach the publisher, so a broken
    collaborator cannot interrupt the dialog flow.
    """

    def __init__(self, name: str, *, logger: logging.Logger | None = None) -> None:
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []
        self._logger = logger or logging.getLogger("nlinterface.events")

    @property
    def name(self) -> str:
        return self._name

    def subscribe(self, callback: Callable[[T], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, payload: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:  # noqa: BLE001 - subscribers must not break the publisher.
                self._logger.exception("event_callback_failed", extra={"channel": self._name})
