"""
Add users and links tables.

Revision ID: 4c1e9a7b2d30
Revises:
Create Date: 2026-10-19 09:14:02.118734
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c1e9a7b2d30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "auth0_id",
            sa.String(length=255),
            nullable=False,
            comment="Auth0 'sub' claim - unique identifier from Auth0",
        ),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_auth0_id"), "users", ["auth0_id"], unique=True)

    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "short_id",
            sa.String(length=32),
            nullable=False,
            comment="Public URL-safe alias, e.g. 'aZ3_x9'",
        ),
        sa.Column("original_url", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clicks", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "is_password_protected",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "password_hash",
            sa.String(length=60),
            nullable=True,
            comment="bcrypt hash of the link password",
        ),
        sa.Column(
            "owner_user_id",
            sa.Integer(),
            nullable=True,
            comment="NULL for links created anonymously",
        ),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_links_short_id"), "links", ["short_id"], unique=True)
    op.create_index(op.f("ix_links_created_at"), "links", ["created_at"], unique=False)
    op.create_index(op.f("ix_links_owner_user_id"), "links", ["owner_user_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_links_owner_user_id"), table_name="links")
    op.drop_index(op.f("ix_links_created_at"), table_name="links")
    op.drop_index(op.f("ix_links_short_id"), table_name="links")
    op.drop_table("links")
    op.drop_index(op.f("ix_users_auth0_id"), table_name="users")
    op.drop_table("users")
