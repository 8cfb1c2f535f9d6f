"""
Checklist Manifesto Backend — Client Transport
================================================

What:  httpx-based connection to the method server, and the only writer of
       ConnectionStatus.
How:   connect() probes GET /health. Any HTTP answer counts as connected;
       a transport failure (refused, DNS, timeout) moves to WAITING and
       schedules a retry on the running event loop using RetryPolicy.

State transitions:
    CONNECTING ──probe ok──▶ CONNECTED ──call fails──▶ WAITING ──timer──▶ CONNECTING
         │                                               ▲
         └──────────────probe fails──────────────────────┘
    any ──disconnect()──▶ OFFLINE (pending retry cancelled; reconnect() leaves it)

Retry timing (tenacity wait_chain of wait_fixed then wait_exponential):
    attempt < min_count:  min_timeout (10ms)
    otherwise:            min(max_timeout, base * exponent**attempt)
                          × uniform(1 - fuzz/2, 1 + fuzz/2)
    A scheduled attempt that raises anything but a transport error logs it
    and leaves the connection OFFLINE.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import RetryCallState, wait_chain, wait_exponential, wait_fixed

from app.client.status import ConnectionState, ConnectionStatus, StatusPublisher

logger = logging.getLogger(__name__)


class RemoteMethodError(Exception):
    """A method call reached the server and came back with a named error."""

    def __init__(self, error: str, reason: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        self.error = error
        self.reason = reason
        self.status_code = status_code
        self.details = details or {}
        super().__init__(f"[{error}] {reason}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "RemoteMethodError":
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return cls("server-error", response.reason_phrase or "Unexpected response", response.status_code)
        return cls(
            error=str(body.get("error", "server-error")),
            reason=str(body.get("reason", "")),
            status_code=response.status_code,
            details=body.get("details"),
        )


class ServerUnavailableError(Exception):
    """The call never got an HTTP answer (offline, refused, timed out)."""

    def __init__(self, method: str, reason: str):
        self.method = method
        self.reason = reason
        super().__init__(f"Server unavailable calling '{method}': {reason}")


@dataclass
class RetryPolicy:
    """
    Reconnect delays built from tenacity wait strategies.

    The first `min_count` retries wait `min_timeout`; after that
    wait_exponential grows `base_timeout * exponent**count` up to
    `max_timeout` (an overflowing power yields the cap). Exponential
    delays are then scaled by a fuzz factor drawn from `rng`.
    """

    base_timeout: float = 1.0
    exponent: float = 2.2
    max_timeout: float = 5 * 60.0
    min_timeout: float = 0.01
    min_count: int = 2
    fuzz: float = 0.5
    rng: Callable[[], float] = field(default=random.random, repr=False)
    _wait: wait_chain = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # wait_chain picks strategy N for attempt N and repeats the last one
        self._wait = wait_chain(
            *[wait_fixed(self.min_timeout) for _ in range(self.min_count)],
            wait_exponential(multiplier=self.base_timeout, exp_base=self.exponent, max=self.max_timeout),
        )

    def timeout(self, count: int) -> float:
        """Delay in seconds before retry number `count` (0-based)."""
        state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.attempt_number = count + 1
        delay = self._wait(state)
        if count < self.min_count:
            return delay
        return delay * (self.rng() * self.fuzz + (1 - self.fuzz / 2))


class ServerConnection:
    """
    Client connection to a Checklist Manifesto server.

    Usage:
        async with ServerConnection("http://localhost:8000") as conn:
            monitor = ConnectionMonitor(conn.publisher)
            monitor.start()
            await conn.connect()
            await conn.login_with_password("admin", "password")
            snapshot = await conn.call("testConnection")
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        publisher: Optional[StatusPublisher] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.publisher = publisher or StatusPublisher()
        self.retry_policy = retry_policy or RetryPolicy()
        self._clock = clock
        self._retry_count = 0
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._offline = False
        self.token: Optional[str] = None
        self.user_id: Optional[str] = None

    async def __aenter__(self) -> "ServerConnection":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def status(self) -> ConnectionStatus:
        return self.publisher.status

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # ── Connection lifecycle ──────────────────────────────────────────────

    async def connect(self) -> bool:
        """Probe the server once. Returns True when it answered."""
        self._cancel_retry()
        self._offline = False
        self.publisher.publish(
            ConnectionStatus(state=ConnectionState.CONNECTING, retry_count=self._retry_count)
        )
        try:
            await self._client.get(self._url("/health"))
        except httpx.TransportError as e:
            self._connection_lost(str(e) or type(e).__name__)
            return False
        self._mark_connected()
        return True

    async def reconnect(self) -> bool:
        """Retry immediately instead of waiting for the scheduled attempt."""
        return await self.connect()

    def disconnect(self) -> None:
        self._cancel_retry()
        self._offline = True
        self.publisher.publish(
            ConnectionStatus(state=ConnectionState.OFFLINE, retry_count=self._retry_count)
        )

    async def close(self) -> None:
        self.disconnect()
        if self._owns_client:
            await self._client.aclose()

    def _mark_connected(self) -> None:
        if self._retry_count:
            logger.info("Reconnected after %d failed attempt(s)", self._retry_count)
        self._retry_count = 0
        if not self.publisher.status.connected:
            self.publisher.publish(ConnectionStatus(state=ConnectionState.CONNECTED))

    def _connection_lost(self, reason: str) -> None:
        if self._offline:
            return
        delay = self.retry_policy.timeout(self._retry_count)
        self._retry_count += 1
        logger.warning(
            "Connection to %s lost (%s); retry %d in %.2fs",
            self.base_url, reason, self._retry_count, delay,
        )
        self._schedule_retry(delay)
        self.publisher.publish(
            ConnectionStatus(
                state=ConnectionState.WAITING,
                retry_count=self._retry_count,
                retry_time=self._clock() + delay,
                reason=reason,
            )
        )

    def _schedule_retry(self, delay: float) -> None:
        self._cancel_retry()
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(delay, self._fire_retry)

    def _fire_retry(self) -> None:
        self._retry_handle = None
        self._retry_task = asyncio.get_running_loop().create_task(self.connect())
        self._retry_task.add_done_callback(self._retry_finished)

    def _retry_finished(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        # scheduled attempts have no awaiter
        logger.error(
            "Scheduled reconnect to %s failed; going offline", self.base_url,
            exc_info=task.exception(),
        )
        if self._retry_task is task:
            self._retry_task = None
        self.disconnect()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
        task = self._retry_task
        self._retry_task = None
        # connect() cancels pending retries on entry; never cancel the caller.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ── Method calls ──────────────────────────────────────────────────────

    async def call(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Invoke a remote method and return its decoded JSON result.

        Raises:
            RemoteMethodError: server answered with an error body
            ServerUnavailableError: no HTTP answer; the connection goes to WAITING
        """
        if self._offline:
            raise ServerUnavailableError(name, "connection is offline")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = await self._client.post(
                self._url(f"/api/methods/{name}"), json=params or {}, headers=headers
            )
        except httpx.TransportError as e:
            reason = str(e) or type(e).__name__
            self._connection_lost(reason)
            raise ServerUnavailableError(name, reason) from e

        self._mark_connected()
        if response.is_error:
            raise RemoteMethodError.from_response(response)
        return response.json()

    async def login_with_password(self, username: str, password: str) -> Dict[str, Any]:
        """accounts.login; keeps the returned token for later calls."""
        result = await self.call("accounts.login", {"username": username, "password": password})
        self.token = result["token"]
        self.user_id = result["userId"]
        return result

    async def logout(self) -> None:
        if not self.token:
            return
        try:
            await self.call("accounts.logout")
        finally:
            self.token = None
            self.user_id = None
