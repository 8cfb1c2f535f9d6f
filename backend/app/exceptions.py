"""
Checklist Manifesto Backend — Custom Exception Hierarchy
==========================================================

What:  Defines application-specific exceptions for every failure a remote
       method can report to its caller.
Why:   Each exception carries a machine-readable error code (the name the
       browser client switches on, e.g. 'invalid-credentials') and the HTTP
       status it maps to. Global handlers in main.py turn them into a
       consistent JSON body.
How:   Each exception class carries a message (safe to return) and an
       optional context dict (logged server-side, never returned).
Who:   Raised by services and the method registry; caught by global handlers.

Exception Hierarchy:
    ChecklistError (base)                      → 500
    ├── ValidationError          validation-error        → 400
    ├── NotAuthorizedError       not-authorized          → 401
    ├── InvalidCredentialsError  invalid-credentials     → 401
    ├── LoginFailedError         login-failed            → 401
    ├── NotFoundError            not-found               → 404
    │   ├── UserNotFoundError    user-not-found          → 404
    │   └── MethodNotFoundError  method-not-found        → 404
    ├── UsernameExistsError      username-exists         → 409
    └── DatabaseError            server-error            → 500

Authentication messages are deliberately generic: they never say whether
the hash was missing, malformed, or simply did not match.
"""

from typing import Any, Dict, Optional


class ChecklistError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    error_code: str = "server-error"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(ChecklistError):
    """
    Raised when method parameters fail validation.

    When:    Missing/empty fields, passwords below the minimum length.
    HTTP:    400 Bad Request
    """

    error_code = "validation-error"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx, error_code=error_code)
        self.field = field


class NotAuthorizedError(ChecklistError):
    """Caller has no valid login token, or acts on someone else's record."""

    error_code = "not-authorized"
    status_code = 401

    def __init__(
        self,
        message: str = "You must be logged in to do this",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(ChecklistError):
    """
    Raised by `login` when the password does not verify.

    Covers both a wrong password and a missing/corrupt stored hash so the
    caller cannot tell the two apart.
    """

    error_code = "invalid-credentials"
    status_code = 401

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid username or password", context=context)


class LoginFailedError(ChecklistError):
    """
    Raised by `accounts.login` for ANY authentication failure.

    Unknown username and wrong password produce the same code and message.
    """

    error_code = "login-failed"
    status_code = 401

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Login failed. Please check your credentials.",
            context=context,
        )


class NotFoundError(ChecklistError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    error_code = "not-found"
    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class UserNotFoundError(NotFoundError):
    """Raised by `login` when no user has the given username."""

    error_code = "user-not-found"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(resource="user", message="User not found", context=context)


class MethodNotFoundError(NotFoundError):
    """Raised by the method registry for an unregistered method name."""

    error_code = "method-not-found"

    def __init__(self, name: str):
        super().__init__(
            resource="method",
            resource_id=name,
            message=f"Method '{name}' not found",
        )


class UsernameExistsError(ChecklistError):
    """Raised by the strict `user.create` method when the name is taken."""

    error_code = "username-exists"
    status_code = 409

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Username already exists", context=context)


class DatabaseError(ChecklistError):
    """
    Raised when database operations fail unexpectedly.

    What:    A query, insert, or update failed (connection lost, deadlock, ...).
    HTTP:    500 Internal Server Error

    Always propagated, never retried. During startup it aborts the
    admin bootstrap. The message returned to the client is always generic;
    details stay in the server log.
    """

    error_code = "server-error"
    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
