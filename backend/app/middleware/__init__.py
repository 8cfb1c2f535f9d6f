# Middleware package init
"""
Checklist Manifesto Backend — Middleware Package
==================================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID shared by every log line of the call
    2. Logging: method, path, status and duration, tagged with the request ID
    3. GZip / CORS: FastAPI built-ins

    Responses pass back through the chain in reverse, so the logging
    middleware sees the final status code and the request ID middleware
    sets the X-Request-ID header last.
"""
