"""Create user and message tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("display_name", sa.String(length=256), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=True)

    # Audio is stored inline as data-URIs, hence Text columns
    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("original_text", sa.Text(), nullable=False),
        sa.Column("original_language", sa.String(length=32), nullable=False, server_default="unknown"),
        sa.Column("translated_text", sa.Text(), nullable=True),
        sa.Column("target_language", sa.String(length=32), nullable=True),
        sa.Column("audio_url", sa.Text(), nullable=False),
        sa.Column("translated_audio_url", sa.Text(), nullable=True),
        sa.Column("audio_duration", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(translated_text IS NULL) = (target_language IS NULL)",
            name="ck_message_translation_pair",
        ),
    )
    op.create_index(op.f("ix_message_user_id"), "message", ["user_id"])
    op.create_index(op.f("ix_message_created_at"), "message", ["created_at"])


def downgrade() -> None:
    op.drop_index(op.f("ix_message_created_at"), table_name="message")
    op.drop_index(op.f("ix_message_user_id"), table_name="message")
    op.drop_table("message")
    op.drop_index(op.f("ix_user_email"), table_name="user")
    op.drop_table("user")
