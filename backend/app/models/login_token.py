"""
Checklist Manifesto Backend — Login Token SQLAlchemy Model
============================================================

What:  ORM model for the `login_tokens` table.
Why:   A login token lets a client resume its session without re-sending
       the password. A user may hold several at once (one per device).
How:   Only a SHA-256 digest of the token is stored; the plaintext value is
       returned to the client exactly once, by accounts.login. A leaked
       database dump therefore cannot be replayed as bearer tokens.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class LoginToken(Base):
    """An issued login token, bound to a user and an issue timestamp."""

    __tablename__ = "login_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    hashed_token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="base64(sha256(token))",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Issue timestamp (UTC); expiry is measured from here",
    )

    def __repr__(self) -> str:
        return f"<LoginToken(id={self.id}, user_id={self.user_id})>"
