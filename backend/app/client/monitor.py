"""
Connection Monitor: turns the transport's status into a UI banner.

Banner rules:
    connected   → no banner
    waiting     → warning  "Attempting to reconnect..." / "Reconnecting in N seconds..."
    connecting  → warning  "Connecting to server..." / "Establishing a connection to the server"
    offline     → error    "Connection Lost" / "There seems to be a connection issue"

Banners are never dismissible. The monitor performs no writes and no
network calls; it only reacts to StatusPublisher callbacks.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.client.status import ConnectionState, ConnectionStatus, StatusPublisher

WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class ConnectionBanner:
    severity: str
    title: str
    message: str
    dismissible: bool = False


def render_banner(status: ConnectionStatus, now: float) -> Optional[ConnectionBanner]:
    if status.state is ConnectionState.CONNECTED:
        return None

    if status.state is ConnectionState.WAITING:
        delay = status.retry_delay(now)
        seconds = math.ceil(delay) if delay is not None else 0
        return ConnectionBanner(
            severity=WARNING,
            title="Attempting to reconnect...",
            message=f"Reconnecting in {seconds} seconds...",
        )

    if status.state is ConnectionState.CONNECTING:
        return ConnectionBanner(
            severity=WARNING,
            title="Connecting to server...",
            message="Establishing a connection to the server",
        )

    return ConnectionBanner(
        severity=ERROR,
        title="Connection Lost",
        message="There seems to be a connection issue",
    )


BannerListener = Callable[[Optional[ConnectionBanner]], None]


class ConnectionMonitor:
    """
    Read-only observer of a StatusPublisher.

    start() subscribes and renders the current status immediately; each
    published status re-renders synchronously and notifies listeners with
    the new banner (None while connected).
    """

    def __init__(
        self,
        publisher: StatusPublisher,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._publisher = publisher
        self._clock = clock
        self._listeners: List[BannerListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._banner: Optional[ConnectionBanner] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._publisher.status

    @property
    def banner(self) -> Optional[ConnectionBanner]:
        return self._banner

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def add_listener(self, listener: BannerListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._publisher.subscribe(self._on_status)
        self._on_status(self._publisher.status)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def render(self) -> Optional[ConnectionBanner]:
        """Banner for the current status at the current clock time.

        The retry countdown changes with time, not with transitions, so a
        UI ticking once per second calls this rather than reading .banner.
        """
        return render_banner(self._publisher.status, self._clock())

    def _on_status(self, status: ConnectionStatus) -> None:
        self._banner = render_banner(status, self._clock())
        for listener in list(self._listeners):
            listener(self._banner)
