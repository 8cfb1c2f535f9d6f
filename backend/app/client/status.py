"""
Connection status value and its publisher.

ConnectionStatus is immutable; a transition is a new value passed to
StatusPublisher.publish(), which calls every subscriber synchronously in
subscription order before returning.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    CONNECTING = "connecting"
    WAITING = "waiting"
    OFFLINE = "offline"


@dataclass(frozen=True)
class ConnectionStatus:
    state: ConnectionState
    retry_count: int = 0
    # Monotonic clock time of the next attempt; only set while WAITING.
    retry_time: Optional[float] = None
    reason: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def retry_delay(self, now: float) -> Optional[float]:
        """Seconds until the next attempt, never negative; None unless WAITING."""
        if self.state is not ConnectionState.WAITING or self.retry_time is None:
            return None
        return max(0.0, self.retry_time - now)


Subscriber = Callable[[ConnectionStatus], None]


class StatusPublisher:
    """Holds the current status and pushes every change to subscribers."""

    def __init__(self, initial: Optional[ConnectionStatus] = None) -> None:
        self._status = initial or ConnectionStatus(state=ConnectionState.CONNECTING)
        self._subscribers: List[Subscriber] = []

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, status: ConnectionStatus) -> None:
        previous = self._status
        self._status = status
        if previous.state is not status.state:
            logger.info("Connection %s -> %s", previous.state.value, status.state.value)
        # Copy so a callback may unsubscribe itself mid-iteration.
        for callback in list(self._subscribers):
            callback(status)
