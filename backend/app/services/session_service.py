"""
Checklist Manifesto Backend — Session Service (Login)
=======================================================

What:  The two password login paths exposed as remote methods.
Why:   Both paths exist for client compatibility and they intentionally
       differ in how much they reveal on failure:

    login            user-not-found       (unknown username)
                     invalid-credentials  (wrong password OR unusable hash)
                     → returns the identity only

    accounts.login   login-failed         (every failure, same message)
                     → also mints a login token

    `login` therefore allows username enumeration while `accounts.login`
    does not. Both behaviours are kept as-is; see DESIGN.md.

How:   Single-shot and stateless: look up, verify, answer. There is no
       lockout counter and no rate limiting at this layer.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    InvalidCredentialsError,
    LoginFailedError,
    UserNotFoundError,
    ValidationError,
)
from app.models.user import User
from app.schemas.user import IdentityResult, TokenLoginResult
from app.services.account_service import AccountService, account_service

logger = logging.getLogger(__name__)


def _require_credentials(username: str, password: str) -> None:
    if not isinstance(username, str) or not username:
        raise ValidationError(message="Username is required", field="username")
    if not isinstance(password, str) or not password:
        raise ValidationError(message="Password is required", field="password")


class SessionService:
    """Validates username/password pairs against the credential store."""

    def __init__(self, accounts: Optional[AccountService] = None):
        self.accounts = accounts or account_service

    async def _authenticate(
        self, db: AsyncSession, username: str, password: str
    ) -> Tuple[Optional[User], bool]:
        user = await self.accounts.find_user_by_username(db, username)
        if user is None:
            return None, False
        if not self.accounts.has_usable_password(user):
            logger.warning("User %s has no usable password credential", user.id)
            return user, False
        return user, await self.accounts.verify_password(user, password)

    async def login(
        self, db: AsyncSession, username: str, password: str
    ) -> IdentityResult:
        """
        Authenticate and return the identity assertion.

        Raises:
            ValidationError: username or password missing/empty.
            UserNotFoundError: no user with this exact username.
            InvalidCredentialsError: wrong password, or missing/corrupt hash.
        """
        _require_credentials(username, password)

        user, verified = await self._authenticate(db, username, password)
        if user is None:
            logger.info("Login rejected for %s: user not found", username)
            raise UserNotFoundError(context={"username": username})
        if not verified:
            logger.info("Login rejected for %s: invalid credentials", username)
            raise InvalidCredentialsError(context={"user_id": str(user.id)})

        logger.info("User %s logged in", user.id)
        return IdentityResult(user_id=user.id, username=user.username)

    async def accounts_login(
        self, db: AsyncSession, username: str, password: str
    ) -> TokenLoginResult:
        """
        Authenticate and mint a login token.

        Raises:
            ValidationError: username or password missing/empty.
            LoginFailedError: for any authentication failure, so the caller
                cannot tell an unknown username from a wrong password.
        """
        _require_credentials(username, password)

        user, verified = await self._authenticate(db, username, password)
        if user is None or not verified:
            logger.info("Token login rejected for %s", username)
            raise LoginFailedError(context={"username": username})

        token, _ = await self.accounts.issue_login_token(db, user.id)
        logger.info("Issued login token for user %s", user.id)
        return TokenLoginResult(user_id=user.id, token=token)


# ── Singleton Instance ────────────────────────────────────────────────────
session_service = SessionService()
