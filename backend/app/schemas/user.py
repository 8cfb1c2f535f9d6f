"""
Checklist Manifesto Backend — Account Method Schemas
======================================================

What:  Params and result models for the login and user.* remote methods.
How:   Every string credential is StrictStr with min_length=1, so a missing,
       empty, or non-string username/password is rejected before any
       database lookup happens.

Field names on the wire are camelCase (see MethodModel).
"""

import uuid
from typing import Any, Dict, Optional

from pydantic import Field, StrictStr

from app.schemas.common import MethodModel


# ══════════════════════════════════════════════════════════════════════════
# Params: what the client sends
# ══════════════════════════════════════════════════════════════════════════


class LoginParams(MethodModel):
    """Params for `login` and `accounts.login`."""

    username: StrictStr = Field(min_length=1)
    password: StrictStr = Field(min_length=1)


class CreateUserParams(MethodModel):
    """Params for `user.create` (registration form)."""

    username: StrictStr = Field(min_length=1, max_length=150)
    password: StrictStr = Field(min_length=1)
    profile: Optional[Dict[str, Any]] = None


class UpdateUserParams(MethodModel):
    """Params for `user.update`; only the profile is editable."""

    user_id: uuid.UUID
    profile: Optional[Dict[str, Any]] = None


class ChangePasswordParams(MethodModel):
    old_password: StrictStr
    new_password: StrictStr


# ══════════════════════════════════════════════════════════════════════════
# Results: what the client gets back
# ══════════════════════════════════════════════════════════════════════════


class IdentityResult(MethodModel):
    """Identity assertion returned by `login`: who just authenticated."""

    user_id: uuid.UUID
    username: str


class TokenLoginResult(MethodModel):
    """
    Returned by `accounts.login`.

    token is the plaintext login token; the server only keeps its hash, so
    this is the only time it is ever visible.
    """

    user_id: uuid.UUID
    token: str


class CreateUserResult(MethodModel):
    user_id: uuid.UUID


class SuccessResult(MethodModel):
    success: bool = True
