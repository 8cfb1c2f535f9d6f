"""
Checklist Manifesto Backend — Client Connection Package
=========================================================

What:  Client-side view of the link to the method server.

    ServerConnection ──publish()──▶ StatusPublisher ──callback──▶ ConnectionMonitor
      (only writer)                  (current status)              (banner, listeners)

The transport is the only code that creates new ConnectionStatus values.
The monitor reads them and derives a ConnectionBanner; it never writes.
"""

from app.client.monitor import ConnectionBanner, ConnectionMonitor, render_banner
from app.client.status import ConnectionState, ConnectionStatus, StatusPublisher
from app.client.transport import (
    RemoteMethodError,
    RetryPolicy,
    ServerConnection,
    ServerUnavailableError,
)

__all__ = [
    "ConnectionBanner",
    "ConnectionMonitor",
    "ConnectionState",
    "ConnectionStatus",
    "RemoteMethodError",
    "RetryPolicy",
    "ServerConnection",
    "ServerUnavailableError",
    "StatusPublisher",
    "render_banner",
]
