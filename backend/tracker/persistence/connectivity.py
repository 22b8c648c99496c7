"""Online/offline signal consumed by the sync pipeline."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], None]


class ConnectivityMonitor:
    """Boolean connectivity state with transition notifications.

    The host environment calls `set_online` whenever it observes a change;
    listeners are only notified on actual transitions.
    """

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Record the current state and notify listeners on a transition."""
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            listener(online)
