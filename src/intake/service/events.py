"""Connection state event stream."""

from __future__ import annotations

from collections import deque
from typing import Callable

from intake.models import ConnectionEvent
from intake.utils.logging import get_logger


logger = get_logger(__name__)

Listener = Callable[[ConnectionEvent], None]


class ConnectionEvents:
    """Publish connection state changes to any number of listeners."""

    def __init__(self, history_size: int = 50) -> None:
        self._listeners: list[Listener] = []
        self.history: deque[ConnectionEvent] = deque(maxlen=history_size)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def publish(self, event: ConnectionEvent) -> None:
        self.history.append(event)
        logger.debug("connection.%s error=%s", event.status.value, event.error)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("connection.listener_failed status=%s", event.status.value)

    @property
    def last(self) -> ConnectionEvent | None:
        return self.history[-1] if self.history else None
