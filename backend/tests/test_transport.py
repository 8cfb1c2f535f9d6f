"""
Checklist Manifesto Backend — Client Transport Unit Tests
===========================================================

What:  ServerConnection against httpx.MockTransport (no network, no server).

What we test:
    ✅ Backoff schedule: two fast retries, then exponential with fuzz, capped
    ✅ A crashed scheduled retry leaves the connection OFFLINE, not CONNECTING
    ✅ connect() publishes CONNECTING → CONNECTED, or WAITING on failure
    ✅ A scheduled retry reconnects by itself; disconnect() cancels it
    ✅ Method calls: result decoding, named errors, bearer token handling
    ✅ The monitor's banner follows the transport end to end
"""

import asyncio
import logging

import httpx
import pytest

from app.client.monitor import ConnectionMonitor
from app.client.status import ConnectionState
from app.client.transport import (
    RemoteMethodError,
    RetryPolicy,
    ServerConnection,
    ServerUnavailableError,
)


def make_connection(handler, clock=lambda: 100.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ServerConnection(
        "http://checklist.test/",
        client=client,
        retry_policy=RetryPolicy(rng=lambda: 0.5),
        clock=clock,
    )


def refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


def healthy(request):
    return httpx.Response(200, json={"status": "healthy"})


async def wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestRetryPolicy:

    def test_first_retries_are_immediate(self):
        policy = RetryPolicy(rng=lambda: 0.5)
        assert policy.timeout(0) == 0.01
        assert policy.timeout(1) == 0.01

    def test_exponential_growth(self):
        policy = RetryPolicy(rng=lambda: 0.5)
        assert policy.timeout(2) == pytest.approx(2.2 ** 2)
        assert policy.timeout(3) == pytest.approx(2.2 ** 3)

    def test_capped_at_five_minutes(self):
        assert RetryPolicy(rng=lambda: 0.5).timeout(50) == pytest.approx(300.0)

    @pytest.mark.parametrize("rand,factor", [(0.0, 0.75), (1.0, 1.25)])
    def test_fuzz_bounds(self, rand, factor):
        policy = RetryPolicy(rng=lambda: rand)
        assert policy.timeout(4) == pytest.approx(2.2 ** 4 * factor)

    def test_very_long_outage_stays_capped(self):
        assert RetryPolicy(rng=lambda: 0.5).timeout(1000) == pytest.approx(300.0)


class TestConnect:

    @pytest.mark.asyncio
    async def test_connect_success(self):
        conn = make_connection(healthy)
        states = []
        conn.publisher.subscribe(lambda s: states.append(s.state))

        assert await conn.connect() is True

        assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
        await conn.close()

    @pytest.mark.asyncio
    async def test_unhealthy_server_still_counts_as_connected(self):
        conn = make_connection(lambda request: httpx.Response(503, json={"status": "unhealthy"}))
        assert await conn.connect() is True
        assert conn.status.connected
        await conn.close()

    @pytest.mark.asyncio
    async def test_connect_failure_waits_to_retry(self):
        conn = make_connection(refuse)

        assert await conn.connect() is False

        status = conn.status
        assert status.state is ConnectionState.WAITING
        assert status.retry_count == 1
        assert status.retry_time == pytest.approx(100.01)
        assert "connection refused" in status.reason
        assert conn.retry_pending
        await conn.close()

    @pytest.mark.asyncio
    async def test_scheduled_retry_reconnects(self):
        attempts = []

        def flaky(request):
            attempts.append(request.url.path)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"status": "healthy"})

        conn = make_connection(flaky)
        await conn.connect()

        await wait_for(lambda: conn.status.connected)

        assert attempts == ["/health", "/health"]
        assert conn.status.retry_count == 0
        await conn.close()

    @pytest.mark.asyncio
    async def test_long_outage_keeps_scheduling_retries(self):
        conn = make_connection(refuse)
        conn._retry_count = 1000

        assert await conn.connect() is False

        assert conn.status.state is ConnectionState.WAITING
        assert conn.status.retry_count == 1001
        assert conn.status.retry_time == pytest.approx(400.0)
        assert conn.retry_pending
        await conn.close()

    @pytest.mark.asyncio
    async def test_crashed_retry_goes_offline(self, caplog):
        attempts = []

        def broken(request):
            attempts.append(request.url.path)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            raise RuntimeError("handler exploded")

        conn = make_connection(broken)
        with caplog.at_level(logging.ERROR, logger="app.client.transport"):
            await conn.connect()
            await wait_for(lambda: conn.status.state is ConnectionState.OFFLINE)

        assert len(attempts) == 2
        assert not conn.retry_pending
        assert "Scheduled reconnect" in caplog.text
        await conn.close()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_retry(self):
        conn = make_connection(refuse)
        await conn.connect()

        conn.disconnect()

        assert conn.status.state is ConnectionState.OFFLINE
        assert not conn.retry_pending
        await asyncio.sleep(0.05)
        assert conn.status.state is ConnectionState.OFFLINE
        await conn.close()

    @pytest.mark.asyncio
    async def test_reconnect_after_disconnect(self):
        conn = make_connection(healthy)
        conn.disconnect()

        assert await conn.reconnect() is True
        assert conn.status.connected
        await conn.close()


class TestCall:

    @pytest.mark.asyncio
    async def test_call_returns_result(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json={"success": True, "sessions": 0})

        conn = make_connection(handler)
        result = await conn.call("testConnection")

        assert result == {"success": True, "sessions": 0}
        assert seen["path"] == "/api/methods/testConnection"
        assert seen["body"] == b"{}"
        await conn.close()

    @pytest.mark.asyncio
    async def test_error_body_raises_remote_method_error(self):
        conn = make_connection(
            lambda request: httpx.Response(
                401,
                json={"error": "login-failed", "reason": "Login failed. Please check your credentials.", "request_id": "r1"},
            )
        )

        with pytest.raises(RemoteMethodError) as exc_info:
            await conn.call("accounts.login", {"username": "admin", "password": "nope"})

        assert exc_info.value.error == "login-failed"
        assert exc_info.value.status_code == 401
        assert conn.status.connected
        await conn.close()

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        conn = make_connection(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(RemoteMethodError) as exc_info:
            await conn.call("testConnection")
        assert exc_info.value.error == "server-error"
        await conn.close()

    @pytest.mark.asyncio
    async def test_transport_failure_marks_connection_lost(self):
        conn = make_connection(refuse)

        with pytest.raises(ServerUnavailableError):
            await conn.call("testConnection")

        assert conn.status.state is ConnectionState.WAITING
        conn.disconnect()
        await conn.close()

    @pytest.mark.asyncio
    async def test_call_while_offline(self):
        conn = make_connection(healthy)
        conn.disconnect()
        with pytest.raises(ServerUnavailableError):
            await conn.call("testConnection")
        await conn.close()

    @pytest.mark.asyncio
    async def test_login_token_sent_and_cleared(self):
        auth_headers = []

        def handler(request):
            auth_headers.append(request.headers.get("Authorization"))
            if request.url.path.endswith("accounts.login"):
                return httpx.Response(200, json={"userId": "u-1", "token": "tok-1"})
            return httpx.Response(200, json={"success": True})

        conn = make_connection(handler)
        await conn.login_with_password("admin", "password")
        await conn.call("testConnection")
        await conn.logout()
        await conn.call("testConnection")

        assert auth_headers == [None, "Bearer tok-1", "Bearer tok-1", None]
        assert conn.token is None and conn.user_id is None
        await conn.close()

    @pytest.mark.asyncio
    async def test_logout_clears_token_even_when_server_refuses(self):
        conn = make_connection(
            lambda request: httpx.Response(401, json={"error": "not-authorized", "reason": "x"})
        )
        conn.token = "stale"

        with pytest.raises(RemoteMethodError):
            await conn.logout()

        assert conn.token is None
        await conn.close()


class TestMonitorIntegration:

    @pytest.mark.asyncio
    async def test_banner_follows_transport(self):
        up = {"value": True}

        def handler(request):
            if not up["value"]:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"status": "healthy"})

        conn = make_connection(handler)
        monitor = ConnectionMonitor(conn.publisher, clock=lambda: 100.0)
        monitor.start()

        await conn.connect()
        assert monitor.banner is None

        up["value"] = False
        with pytest.raises(ServerUnavailableError):
            await conn.call("testConnection")
        assert monitor.banner.title == "Attempting to reconnect..."

        conn.disconnect()
        assert monitor.banner.title == "Connection Lost"
        await conn.close()
