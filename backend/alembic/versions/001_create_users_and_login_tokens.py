"""Create users, login_tokens and connection_probe tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: the credential store, issued login tokens, and the
       scratch table used by the testDatabase diagnostic.
How:   Portable column types (sa.Uuid, sa.JSON) so the same migration runs on
       PostgreSQL and on SQLite in development.

Rollback: downgrade() drops all three tables (destructive; accounts are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False,
                  comment="Unique identifier, generated by the application"),
        sa.Column("username", sa.String(150), nullable=False,
                  comment="Login name; unique across all users"),
        sa.Column("password_hash", sa.String(255), nullable=True,
                  comment="Salted one-way hash of the password"),
        sa.Column("hash_algorithm", sa.String(20), nullable=False,
                  server_default=sa.text("'bcrypt'"),
                  comment="Algorithm tag for password_hash"),
        sa.Column("profile", sa.JSON(), nullable=False,
                  comment="Open attribute mapping; includes the role marker"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP"),
                  comment="When this user was created (UTC)"),
        sa.PrimaryKeyConstraint("id"),
    )
    # The unique index is what resolves concurrent creates of one username.
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "login_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("hashed_token", sa.String(64), nullable=False,
                  comment="base64(sha256(token))"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP"),
                  comment="Issue timestamp (UTC); expiry is measured from here"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hashed_token"),
    )
    op.create_index("ix_login_tokens_user_id", "login_tokens", ["user_id"])

    op.create_table(
        "connection_probe",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("test", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("connection_probe")
    op.drop_index("ix_login_tokens_user_id", table_name="login_tokens")
    op.drop_table("login_tokens")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
