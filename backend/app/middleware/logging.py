"""
Checklist Manifesto Backend — Request Logging Middleware
==========================================================

What:  One access log line per method call, with duration and request ID.
When:  After RequestIDMiddleware (uses the request ID for correlation).

Example line:
    POST /api/methods/accounts.login 401 12.3ms [a1b2c3d4] from 10.0.0.7

The same values are attached as `extra` fields for structured handlers.

What we log vs what we DON'T log:
    ✅ Log: method, path, status, duration, client IP, request ID
    ❌ Don't log: request body (method params carry passwords),
       Authorization header (bearer login token)
"""

import logging
import time
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("checklist.access")

# Probed every few seconds by load balancers and reconnecting clients.
QUIET_PATHS = frozenset({"/health"})

ACCESS_FORMAT = "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s"


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        - POST /api/methods/testConnection: 5-20ms
        - POST /api/methods/accounts.login: 50-300ms (bcrypt dominates)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)

        fields: Dict[str, Any] = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(level_for_status(response.status_code), ACCESS_FORMAT % fields, extra=fields)
        return response
