"""
Checklist Manifesto Backend — Shared Pydantic Schemas
=======================================================

What:  Base model for method payloads plus the error and health contracts.
Why:   The browser client speaks camelCase (userId, oldPassword); Python code
       speaks snake_case. MethodModel bridges the two with an alias generator
       so neither side has to compromise.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MethodModel(BaseModel):
    """
    Base for every method params/result model.

    - Accepts both camelCase (wire) and snake_case (Python) field names
    - Rejects unknown keys, mirroring the strict argument checks the client
      has always been held to
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        from_attributes=True,
    )


class EmptyParams(MethodModel):
    """Params for methods that take no arguments."""


class ErrorResponse(BaseModel):
    """
    Standardized error body for every failed method call.

    Fields:
        error:      Machine-readable code the client switches on
                    (e.g. "invalid-credentials", "login-failed")
        reason:     Human-readable description, safe to display
        details:    Optional extra context (validation errors only)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "user-not-found",
            "reason": "User not found",
            "request_id": "1f0c2a9e"
        }
    """

    error: str = Field(description="Machine-readable error code")
    reason: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Liveness response returned by GET /health."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    methods: int = Field(description="Number of registered remote methods")
    uptime_seconds: float = Field(description="Seconds since service started")
