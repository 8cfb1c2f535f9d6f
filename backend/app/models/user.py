"""
Checklist Manifesto Backend — User SQLAlchemy Model
=====================================================

What:  ORM model representing the `users` table (the credential store).
Why:   Maps user records to Python objects for the account service.
Who:   Written only by AccountService; read by the session authenticator
       and the token resume path.

Table Design Rationale:
    - UUID primary key: non-sequential, generated in Python so the id is
      known before the insert is flushed
    - username: unique index is the ONLY guard against duplicate accounts;
      concurrent creates are resolved by the database, not by app locks
    - password_hash: bcrypt output (never plaintext). Nullable so an account
      imported without a credential can still exist (login then fails with
      invalid-credentials)
    - hash_algorithm: tag stored next to the hash so the algorithm can be
      upgraded later without guessing from the hash format
    - profile: open JSON mapping; carries the role marker ({"role": "admin"})
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

BCRYPT = "bcrypt"


class User(Base):
    """An account that can log in to the checklist application."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier, generated by the application",
    )

    username: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        index=True,
        comment="Login name; unique across all users",
    )

    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Salted one-way hash of the password",
    )

    hash_algorithm: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BCRYPT,
        server_default=text("'bcrypt'"),
        comment="Algorithm tag for password_hash",
    )

    profile: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Open attribute mapping; includes the role marker",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this user was created (UTC)",
    )

    @property
    def role(self) -> Optional[str]:
        return (self.profile or {}).get("role")

    def __repr__(self) -> str:
        # Never include password_hash here: reprs end up in logs.
        return f"<User(id={self.id}, username='{self.username}')>"
