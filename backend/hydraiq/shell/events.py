"""Data Change Bus - Explicit subscription for "user data changed" events."""

import logging
from typing import Callable

from ..core.models import DataChange

logger = logging.getLogger(__name__)

Listener = Callable[[DataChange], None]


class DataChangeBus:
    """Synchronous publish/subscribe for DataChange events.

    Listeners run in subscription order on the publisher's call stack. A
    failing listener is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Called with every published DataChange

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, change: DataChange) -> None:
        logger.debug("Publishing data change: scope=%s dates=%s", change.scope, change.dates)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Data change listener failed")
