"""
Checklist Manifesto Backend — Account Service (Credential Store Writer)
=========================================================================

What:  Creates users, hashes and verifies passwords, issues and resolves
       login tokens, and bootstraps the administrator account.
Why:   The `users` table is owned exclusively by this service; every other
       module reads users through it and nothing else writes them.
How:   Stateless service over an AsyncSession passed in per call.
Who:   Called by the session service, the user.* methods, the diagnostics
       reporter (session count) and the startup sequence.

Password Hashing:
    bcrypt with a tunable work factor (BCRYPT_ROUNDS, default 10).
    Hashing is CPU-bound (~100ms at 10 rounds), so both hashing and checking
    run in the threadpool (run_in_threadpool) instead of on the event loop.

    bcrypt only looks at the first 72 bytes of a password and the library
    rejects longer input outright, so longer passwords are refused at
    creation time with a validation error.

Concurrency:
    There are no application locks. The unique index on users.username is
    the sole guard: when two callers race to create the same new username,
    the loser's INSERT fails with IntegrityError, which is treated exactly
    like "already exists" (re-read, return the winner's id).

Login Tokens:
    Random URL-safe strings (256 bits). Only base64(sha256(token)) is stored.
"""

import base64
import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.exceptions import DatabaseError, UsernameExistsError, ValidationError
from app.models.login_token import LoginToken
from app.models.user import BCRYPT, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
BCRYPT_MAX_PASSWORD_BYTES = 72
ADMIN_ROLE = "admin"


def hash_login_token(token: str) -> str:
    """Digest stored in login_tokens.hashed_token for a plaintext token."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def _checkpw(candidate: str, stored_hash: str) -> bool:
    try:
        return bcrypt.checkpw(candidate.encode("utf-8"), stored_hash.encode("ascii"))
    except ValueError:
        # Malformed/foreign hash, or a candidate past bcrypt's byte limit
        return False


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountService:
    """
    Business logic for user accounts and login tokens.

    Error Handling Strategy:
        SQLAlchemy errors are wrapped in DatabaseError and propagated. They
        are never retried here: the caller (a method call, or the startup
        bootstrap) decides what a persistence failure means.
    """

    def __init__(
        self,
        bcrypt_rounds: Optional[int] = None,
        token_expiration_days: Optional[int] = None,
    ):
        self.bcrypt_rounds = bcrypt_rounds or settings.bcrypt_rounds
        self.token_expiration_days = (
            token_expiration_days or settings.login_token_expiration_days
        )

    # ── Passwords ─────────────────────────────────────────────────────────

    def _hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")

    async def hash_password(self, password: str) -> str:
        """
        Hash a plaintext password with a fresh salt.

        Raises:
            ValidationError: Empty password, or longer than bcrypt accepts.
        """
        if not password:
            raise ValidationError(message="Password is required", field="password")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                message=f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes",
                field="password",
                error_code="invalid-password",
            )
        return await run_in_threadpool(self._hash_sync, password)

    @staticmethod
    def has_usable_password(user: User) -> bool:
        """True when the stored credential is present and in a known format."""
        stored = user.password_hash
        return bool(stored) and user.hash_algorithm == BCRYPT and stored.startswith("$2")

    async def verify_password(self, user: User, candidate: str) -> bool:
        """
        Check a candidate password against the user's stored hash.

        bcrypt.checkpw compares in constant time. Returns False (never
        raises) for an empty candidate or a missing/corrupt stored hash.
        Neither value is ever logged.
        """
        if not candidate or not self.has_usable_password(user):
            return False
        return await run_in_threadpool(_checkpw, candidate, user.password_hash)

    # ── Lookups ───────────────────────────────────────────────────────────

    async def find_user_by_username(
        self, db: AsyncSession, username: str
    ) -> Optional[User]:
        """Exact-match lookup on the unique username index."""
        try:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", username, str(e))
            raise DatabaseError(
                message="Could not look up the user. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not load the user. Please try again.",
                context={"user_id": str(user_id), "error_type": type(e).__name__},
            ) from e

    # ── Creation ──────────────────────────────────────────────────────────

    async def _insert_user(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        profile: Optional[Dict[str, Any]],
    ) -> Tuple[uuid.UUID, bool]:
        """
        Hash and insert a new user.

        Returns:
            (user_id, created). created is False when the unique index
            rejected the insert because another caller won the race.
        """
        password_hash = await self.hash_password(password)
        user = User(
            id=uuid.uuid4(),
            username=username,
            password_hash=password_hash,
            hash_algorithm=BCRYPT,
            profile=dict(profile or {}),
            created_at=datetime.now(timezone.utc),
        )

        # Committed here (not at the end of the request) so the unique index
        # settles any race before we answer.
        try:
            db.add(user)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            winner = await self.find_user_by_username(db, username)
            if winner is None:
                # Constraint failure unrelated to the username
                raise DatabaseError(
                    message="Could not create the user. Please try again.",
                    context={"username": username, "error_type": "IntegrityError"},
                )
            logger.info(
                "Concurrent create for %s resolved to existing user %s",
                username,
                winner.id,
            )
            return winner.id, False
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error creating user %s: %s", username, str(e))
            raise DatabaseError(
                message="Could not create the user. Please try again.",
                context={"username": username, "error_type": type(e).__name__},
            ) from e

        logger.info("Created user %s with ID %s", username, user.id)
        return user.id, True

    async def create_user_directly(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> uuid.UUID:
        """
        Idempotent create: returns the existing id if username is taken.

        No duplicate-detection error is ever raised, including when a
        concurrent caller creates the same username first.
        """
        existing = await self.find_user_by_username(db, username)
        if existing is not None:
            return existing.id
        user_id, _ = await self._insert_user(db, username, password, profile)
        return user_id

    async def create_user(
        self,
        db: AsyncSession,
        username: str,
        password: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> uuid.UUID:
        """
        Strict create used by the registration method.

        Raises:
            ValidationError: Password shorter than MIN_PASSWORD_LENGTH.
            UsernameExistsError: Username taken (before or during the insert).
        """
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
                error_code="invalid-password",
            )
        if await self.find_user_by_username(db, username) is not None:
            raise UsernameExistsError(context={"username": username})
        user_id, created = await self._insert_user(db, username, password, profile)
        if not created:
            raise UsernameExistsError(context={"username": username})
        return user_id

    async def ensure_admin_user(
        self, db: AsyncSession, username: str, password: str
    ) -> uuid.UUID:
        """
        Make sure the administrator account exists.

        Safe to call on every startup: an existing user is returned as-is
        (password NOT reset, zero writes). Persistence failures propagate so
        the startup sequence can abort.
        """
        existing = await self.find_user_by_username(db, username)
        if existing is not None:
            logger.info("User %s already exists", username)
            return existing.id

        logger.info("Creating user: %s", username)
        user_id = await self.create_user_directly(
            db, username, password, profile={"role": ADMIN_ROLE}
        )
        logger.info("Created user with ID: %s", user_id)
        return user_id

    # ── Profile & password changes ────────────────────────────────────────

    async def update_profile(
        self, db: AsyncSession, user: User, profile: Dict[str, Any]
    ) -> None:
        user.profile = dict(profile)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not update the profile. Please try again.",
                context={"user_id": str(user.id), "error_type": type(e).__name__},
            ) from e

    async def change_password(
        self, db: AsyncSession, user: User, old_password: str, new_password: str
    ) -> None:
        """
        Replace the user's password after re-verifying the current one.

        Raises:
            ValidationError: new password too short ('invalid-password') or
                current password wrong ('password-change-failed').
        """
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="newPassword",
                error_code="invalid-password",
            )
        if not await self.verify_password(user, old_password):
            raise ValidationError(
                message="Incorrect password",
                field="oldPassword",
                error_code="password-change-failed",
            )

        user.password_hash = await self.hash_password(new_password)
        user.hash_algorithm = BCRYPT
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not change the password. Please try again.",
                context={"user_id": str(user.id), "error_type": type(e).__name__},
            ) from e
        logger.info("Password changed for user %s", user.id)

    # ── Login tokens ──────────────────────────────────────────────────────

    def _token_cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=self.token_expiration_days)

    async def issue_login_token(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> Tuple[str, datetime]:
        """
        Mint a new login token for user_id.

        Returns:
            (plaintext token, issue timestamp). Existing tokens for the same
            user stay valid.
        """
        token = secrets.token_urlsafe(32)
        issued_at = datetime.now(timezone.utc)
        db.add(
            LoginToken(
                id=uuid.uuid4(),
                user_id=user_id,
                hashed_token=hash_login_token(token),
                created_at=issued_at,
            )
        )
        try:
            await db.flush()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not complete the login. Please try again.",
                context={"user_id": str(user_id), "error_type": type(e).__name__},
            ) from e
        return token, issued_at

    async def resolve_login_token(
        self, db: AsyncSession, token: Optional[str]
    ) -> Optional[User]:
        """Return the user a login token belongs to, or None if unknown/expired."""
        if not token:
            return None
        try:
            result = await db.execute(
                select(LoginToken, User)
                .join(User, LoginToken.user_id == User.id)
                .where(LoginToken.hashed_token == hash_login_token(token))
            )
            row = result.first()
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not resume the session. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        if row is None:
            return None
        login_token, user = row
        if _as_utc(login_token.created_at) < self._token_cutoff():
            logger.info("Expired login token presented for user %s", user.id)
            return None
        return user

    async def revoke_login_token(self, db: AsyncSession, token: str) -> bool:
        """Delete a login token (logout). Returns True if one was removed."""
        try:
            result = await db.execute(
                delete(LoginToken).where(LoginToken.hashed_token == hash_login_token(token))
            )
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not log out. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e
        return (result.rowcount or 0) > 0

    async def count_active_tokens(self, db: AsyncSession) -> int:
        try:
            result = await db.execute(
                select(func.count(LoginToken.id)).where(
                    LoginToken.created_at >= self._token_cutoff()
                )
            )
        except SQLAlchemyError as e:
            raise DatabaseError(
                message="Could not count sessions.",
                context={"error_type": type(e).__name__},
            ) from e
        return result.scalar() or 0


# ── Singleton Instance ────────────────────────────────────────────────────
account_service = AccountService()
