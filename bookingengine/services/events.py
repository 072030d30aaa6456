"""
Booking events for downstream collaborators (notifications, CRM).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Union

from ..domain.models import BookingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreated:
    booking_id: str


@dataclass(frozen=True)
class BookingStatusChanged:
    booking_id: str
    old_status: BookingStatus
    new_status: BookingStatus


BookingEvent = Union[BookingCreated, BookingStatusChanged]
EventHandler = Callable[[BookingEvent], None]


class EventBus:
    """
    Synchronous in-process publisher.

    Events are published after the write they describe has been committed,
    so a failing subscriber is logged and never rolls anything back.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: BookingEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %s", handler, event)
